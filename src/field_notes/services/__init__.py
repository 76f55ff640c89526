"""Services that coordinate the stores."""
