"""Format registry -- detection by magic bytes."""

from typing import BinaryIO

from exifredact.errors import UnsupportedFormat
from exifredact.formats.base import ContainerHandler
from exifredact.formats.jpeg import JPEGHandler
from exifredact.formats.png import PNGHandler

# Bytes read from the start of a file for signature matching
SNIFF_SIZE = 12

_HANDLERS = [
    JPEGHandler(),
    PNGHandler(),
]


def sniff(src: BinaryIO) -> bytes:
    """Peek at the leading bytes of a seekable stream and rewind."""
    start = src.tell()
    header = src.read(SNIFF_SIZE)
    src.seek(start)
    return header


def detect_format(header: bytes) -> str:
    """Detect the container format from leading bytes.

    Returns "jpeg", "png" or "unknown".
    """
    for handler in _HANDLERS:
        if handler.can_handle(header):
            return handler.format_name
    return 'unknown'


def get_handler(header: bytes, fix_png_crc: bool = False) -> ContainerHandler:
    """Get the handler for a file's leading bytes.

    Raises UnsupportedFormat if no handler recognizes the signature.
    """
    for handler in _HANDLERS:
        if handler.can_handle(header):
            if fix_png_crc and isinstance(handler, PNGHandler):
                return PNGHandler(fix_crc=True)
            return handler
    raise UnsupportedFormat(
        f'Unsupported image format (leading bytes {header[:4].hex() or "empty"})')


def list_supported_formats() -> list:
    """List all supported format names."""
    return [h.format_name for h in _HANDLERS]
