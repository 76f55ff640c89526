"""Entry Store and Blob Store."""
