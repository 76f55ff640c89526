"""Utility functions for the Field Notes persistence layer.

Holds the path-list codec used by the path-list storage strategy, and the
small helpers that classify media paths and name new entries.
"""

import json
import logging
import os

from field_notes.exceptions import InvalidArgument, CorruptData

logger = logging.getLogger(__name__)

EMPTY_PATH_LIST = "[]"

VIDEO_EXTENSIONS = frozenset({'.mp4', '.mov', '.avi', '.mkv'})


def encode_path_list(paths):
    """Encode an ordered list of file paths into a single text column value.

    The encoding is a JSON array with non-ASCII characters escaped, so paths
    decoded from undecodable file names (lone surrogates) survive the UTF-8
    column. An empty or missing list encodes to ``"[]"`` so the column is
    never NULL.

    Args:
        paths: List or tuple of path strings, or None

    Returns:
        str: Canonical JSON array text

    Raises:
        InvalidArgument: If paths is a bare string or contains non-string items
    """
    if paths is None:
        return EMPTY_PATH_LIST
    if isinstance(paths, (str, bytes)) or not isinstance(paths, (list, tuple)):
        raise InvalidArgument(f"file paths must be a list of strings, got {type(paths).__name__}")

    for index, path in enumerate(paths):
        if not isinstance(path, str):
            raise InvalidArgument(f"file path at position {index} must be a string, got {type(path).__name__}")

    if not paths:
        return EMPTY_PATH_LIST
    return json.dumps(list(paths))


def decode_path_list(text):
    """Decode a value produced by :func:`encode_path_list`.

    Args:
        text: Stored column value; None, empty or whitespace decodes to []

    Returns:
        list: The ordered path strings

    Raises:
        CorruptData: If the text is not a JSON array of strings
    """
    if text is None or not text.strip():
        return []

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Malformed path list in storage: {text[:100]!r}")
        raise CorruptData(f"Malformed file path list: {e}") from e

    if not isinstance(decoded, list):
        raise CorruptData(f"File path list must be a JSON array, got {type(decoded).__name__}")
    if not all(isinstance(path, str) for path in decoded):
        raise CorruptData("File path list must contain only strings")
    return decoded


def is_video_path(path):
    """Return True when the path's extension marks a video file."""
    return os.path.splitext(path)[1].lower() in VIDEO_EXTENSIONS


def default_entry_name(created_at, is_video=False):
    """Name a new entry after its capture date and media type, e.g. ``2024-05-01_image``."""
    return f"{created_at:%Y-%m-%d}_{'video' if is_video else 'image'}"
