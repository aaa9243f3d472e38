"""
MIME type detection for files served from the static directory.

The browser decides how to treat a file from its Content-Type, so a
stylesheet sent as text/plain is silently ignored. We map by extension
and fall back to application/octet-stream.
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".txt": "text/plain",
    ".xml": "application/xml",
    ".map": "application/json",    # Source maps

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: File path or name ("css/style.css").
        default: Returned for unknown extensions (octet-stream if None).

    Returns:
        MIME type without parameters, e.g. "text/css".
    """
    suffix = Path(path).suffix.lower()
    return MIME_TYPES.get(suffix, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """Text-like types get a charset parameter in Content-Type."""
    return (
        mime_type.startswith("text/")
        or mime_type in ("application/json", "application/xml", "image/svg+xml")
    )


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for a file.

        >>> get_content_type("style.css")
        'text/css; charset=utf-8'
        >>> get_content_type("logo.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
