"""PNG chunk walker.

Chunk layout: 4-byte big-endian data length, 4-byte ASCII type, data,
4-byte CRC-32 over type + data.  EXIF lives in the ``eXIf`` chunk.
"""

import logging
import struct
import zlib
from typing import BinaryIO

from exifredact.errors import FormatError
from exifredact.formats.base import (
    ContainerHandler,
    PayloadTransform,
    read_exact,
    read_or_eof,
)

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
EXIF_CHUNK_TYPE = b'eXIf'

MAX_CHUNK_LENGTH = 0x7FFFFFFF


def chunk_crc(chunk_type: bytes, data: bytes) -> bytes:
    """CRC-32 of a chunk's type and data, packed big-endian."""
    return struct.pack('>I', zlib.crc32(data, zlib.crc32(chunk_type)) & 0xFFFFFFFF)


class PNGHandler(ContainerHandler):
    """Rewrites a PNG stream, routing ``eXIf`` chunk data through a transform.

    The original CRC of an ``eXIf`` chunk is copied unchanged unless
    ``fix_crc`` is set, in which case it is recomputed over the new data.
    """

    format_name = 'png'
    # Format detection only needs the first four signature bytes
    signature = PNG_SIGNATURE[:4]

    def __init__(self, fix_crc: bool = False):
        self.fix_crc = fix_crc

    def rewrite(self, src: BinaryIO, out: BinaryIO,
                transform: PayloadTransform) -> int:
        out.write(read_exact(src, len(PNG_SIGNATURE), 'PNG signature'))

        exif_count = 0
        while True:
            header = read_or_eof(src, 8, 'PNG chunk header')
            if header is None:
                break
            length, chunk_type = struct.unpack('>I4s', header)

            if chunk_type != EXIF_CHUNK_TYPE:
                out.write(header)
                out.write(read_exact(src, length + 4,
                                     f'{chunk_type!r} chunk'))
                continue

            data = bytearray(read_exact(src, length, 'eXIf chunk data'))
            data = transform(data)
            if len(data) > MAX_CHUNK_LENGTH:
                raise FormatError(f'eXIf chunk too large: {len(data)} bytes')
            crc = read_exact(src, 4, 'eXIf chunk CRC')
            if self.fix_crc:
                crc = chunk_crc(chunk_type, bytes(data))

            out.write(struct.pack('>I', len(data)))
            out.write(chunk_type)
            out.write(data)
            out.write(crc)
            exif_count += 1

        logger.debug('PNG rewritten, %d eXIf chunk(s)', exif_count)
        return exif_count
