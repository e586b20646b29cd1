"""JPEG segment walker.

Marker structure (ITU T.81)::

    FF D8                       SOI, no length
    FF xx  LL LL  payload...    length-prefixed segment, LL LL big-endian,
                                counting itself but not the marker
    FF DA  ...                  SOS, followed by entropy-coded scan data

EXIF lives in APP1 (FF E1).  Everything after SOS is copied verbatim.
Extra FF fill bytes before a marker code are copied through unchanged.
"""

import logging
import shutil
import struct
from typing import BinaryIO

from exifredact.errors import FormatError
from exifredact.formats.base import (
    ContainerHandler,
    PayloadTransform,
    read_exact,
    read_or_eof,
)

logger = logging.getLogger(__name__)

SOI = b'\xff\xd8'
APP1 = 0xE1
SOS = 0xDA

# Markers that stand alone, with no length field: TEM, RST0-RST7, SOI, EOI
STANDALONE_MARKERS = frozenset({0x01} | set(range(0xD0, 0xDA)))

MAX_SEGMENT_LENGTH = 0xFFFF


class JPEGHandler(ContainerHandler):
    """Rewrites a JPEG stream, routing APP1 payloads through a transform."""

    format_name = 'jpeg'
    signature = SOI

    def rewrite(self, src: BinaryIO, out: BinaryIO,
                transform: PayloadTransform) -> int:
        soi = read_exact(src, 2, 'JPEG SOI marker')
        if soi != SOI:
            raise FormatError(f'Not a JPEG stream: starts with {soi.hex()}')
        out.write(soi)

        app1_count = 0
        while True:
            marker = read_or_eof(src, 2, 'JPEG marker')
            if marker is None:
                break
            if marker[0] != 0xFF:
                raise FormatError(
                    f'Expected JPEG marker, found bytes {marker.hex()}')
            code = marker[1]
            # Any number of 0xFF fill bytes may precede the marker code
            while code == 0xFF:
                code = read_exact(src, 1, 'JPEG marker')[0]
                marker += bytes((code,))

            if code == APP1:
                length = self._read_length(src, code)
                payload = bytearray(read_exact(src, length - 2,
                                               'APP1 segment payload'))
                payload = transform(payload)
                new_length = len(payload) + 2
                if new_length > MAX_SEGMENT_LENGTH:
                    raise FormatError(
                        f'APP1 payload too large: {len(payload)} bytes')
                out.write(marker)
                out.write(struct.pack('>H', new_length))
                out.write(payload)
                app1_count += 1
                continue

            out.write(marker)

            if code == SOS:
                # Scan data has no segment structure to walk
                shutil.copyfileobj(src, out)
                break

            if code in STANDALONE_MARKERS:
                continue

            length = self._read_length(src, code)
            out.write(struct.pack('>H', length))
            out.write(read_exact(src, length - 2,
                                 f'segment FF{code:02X} payload'))

        logger.debug('JPEG rewritten, %d APP1 segment(s)', app1_count)
        return app1_count

    @staticmethod
    def _read_length(src: BinaryIO, code: int) -> int:
        raw = read_exact(src, 2, f'segment FF{code:02X} length')
        length = struct.unpack('>H', raw)[0]
        if length < 2:
            raise FormatError(
                f'Invalid length {length} for segment FF{code:02X}')
        return length
