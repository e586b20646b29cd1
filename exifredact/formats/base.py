"""Abstract base class for image container handlers."""

from abc import ABC, abstractmethod
from typing import BinaryIO, Callable, Optional

from exifredact.errors import FormatError

# Called with each metadata payload; returns the (same-length) payload to emit
PayloadTransform = Callable[[bytearray], bytearray]


class ContainerHandler(ABC):
    """Base class for the JPEG and PNG walkers.

    A handler streams one container format from ``src`` to ``out``,
    copying every segment/chunk verbatim except the EXIF carrier, whose
    payload is routed through a transform.
    """

    format_name = 'unknown'
    signature = b''

    def can_handle(self, header: bytes) -> bool:
        """Check the leading bytes of a file against this format's signature."""
        return bool(self.signature) and header.startswith(self.signature)

    @abstractmethod
    def rewrite(self, src: BinaryIO, out: BinaryIO,
                transform: PayloadTransform) -> int:
        """Copy the container from src to out, transforming EXIF payloads.

        ``src`` must be positioned at the start of the file signature.

        Returns the number of EXIF carriers (segments or chunks) seen.
        Raises FormatError on truncated or structurally invalid input.
        """
        ...


def read_exact(src: BinaryIO, size: int, what: str) -> bytes:
    """Read exactly ``size`` bytes or raise FormatError."""
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = src.read(remaining)
        if not chunk:
            raise FormatError(
                f'Truncated {what}: expected {size} bytes, '
                f'got {size - remaining}')
        chunks.append(chunk)
        remaining -= len(chunk)
    return b''.join(chunks)


def read_or_eof(src: BinaryIO, size: int, what: str) -> Optional[bytes]:
    """Read ``size`` bytes, or return None on a clean end of stream.

    A stream that ends part-way through the field raises FormatError.
    """
    first = src.read(size)
    if not first:
        return None
    if len(first) < size:
        first += read_exact(src, size - len(first), what)
    return first
