"""In-memory EXIF/TIFF parser -- stdlib only (struct module).

Works directly on the payload of a JPEG APP1 segment or a PNG eXIf chunk:
``Exif\\0\\0`` followed by a TIFF header and its IFDs.  All offsets inside
the TIFF structure are relative to the TIFF header, which starts at byte 6
of the payload.
"""

import struct
from typing import Dict, Iterator, Optional

from exifredact.errors import FormatError
from exifredact.exif.tags import tag_name

EXIF_PREFIX = b'Exif\x00\x00'

# Absolute position of the TIFF header inside an EXIF payload
TIFF_HEADER_START = len(EXIF_PREFIX)

# Order marker (2) + magic (2) + IFD0 offset (4)
TIFF_HEADER_SIZE = 8

IFD_ENTRY_SIZE = 12

# Element sizes by TIFF type, used to tell inline values from offsets
TIFF_TYPE_SIZES: Dict[int, int] = {
    1: 1,    # BYTE
    2: 1,    # ASCII
    3: 2,    # SHORT
    4: 4,    # LONG
    5: 8,    # RATIONAL
    6: 1,    # SBYTE
    7: 1,    # UNDEFINED
    8: 2,    # SSHORT
    9: 4,    # SLONG
    10: 8,   # SRATIONAL
    11: 4,   # FLOAT
    12: 8,   # DOUBLE
}

_BYTE_ORDERS = {b'II': '<', b'MM': '>'}


class ExifHeader:
    """Parsed header of an EXIF payload."""
    __slots__ = ('byte_order', 'endian', 'first_ifd_offset')

    def __init__(self, byte_order: str, endian: str, first_ifd_offset: int):
        self.byte_order = byte_order  # "II" | "MM"
        self.endian = endian  # struct prefix "<" | ">"
        self.first_ifd_offset = first_ifd_offset

    @property
    def ifd0_position(self) -> int:
        """Absolute position of IFD0 within the payload."""
        return TIFF_HEADER_START + self.first_ifd_offset


class IFDEntry:
    """A 12-byte IFD entry located inside an EXIF payload."""
    __slots__ = ('tag_id', 'dtype', 'count', 'value', 'entry_offset')

    def __init__(self, tag_id: int, dtype: int, count: int, value: int,
                 entry_offset: int):
        self.tag_id = tag_id
        self.dtype = dtype
        self.count = count
        self.value = value
        self.entry_offset = entry_offset

    @property
    def tag_name(self) -> str:
        return tag_name(self.tag_id)

    @property
    def value_field_offset(self) -> int:
        """Absolute position of the 4-byte value/offset field."""
        return self.entry_offset + 8

    @property
    def total_size(self) -> int:
        return TIFF_TYPE_SIZES.get(self.dtype, 1) * self.count

    @property
    def is_inline(self) -> bool:
        return self.total_size <= 4

    def __repr__(self):
        return (f'IFDEntry({self.tag_name}, type={self.dtype}, '
                f'count={self.count}, value=0x{self.value:08X})')


def has_exif_prefix(data: bytes) -> bool:
    return bytes(data[:TIFF_HEADER_START]) == EXIF_PREFIX


def read_exif_header(data: bytes) -> Optional[ExifHeader]:
    """Parse the ``Exif\\0\\0`` + TIFF header prefix of a payload.

    Returns None when the payload is not TIFF-structured EXIF (no prefix,
    or too short to hold a TIFF header).  Raises FormatError when the
    byte-order marker is neither ``II`` nor ``MM``.
    """
    if not has_exif_prefix(data):
        return None
    if len(data) < TIFF_HEADER_START + 2:
        return None

    bo = bytes(data[TIFF_HEADER_START:TIFF_HEADER_START + 2])
    endian = _BYTE_ORDERS.get(bo)
    if endian is None:
        raise FormatError(f'Invalid EXIF byte order marker: {bo!r}')

    if len(data) < TIFF_HEADER_START + TIFF_HEADER_SIZE:
        return None

    # The 2-byte magic (42) between marker and offset is not validated
    first_ifd_offset = struct.unpack_from(
        endian + 'I', data, TIFF_HEADER_START + 4)[0]
    return ExifHeader(bo.decode('ascii'), endian, first_ifd_offset)


def read_ifd_count(data: bytes, ifd_position: int,
                   endian: str) -> Optional[int]:
    """Read the entry count of the IFD at an absolute position, or None."""
    if ifd_position < 0 or ifd_position + 2 > len(data):
        return None
    return struct.unpack_from(endian + 'H', data, ifd_position)[0]


def iter_ifd(data: bytes, ifd_position: int,
             endian: str) -> Iterator[IFDEntry]:
    """Yield the entries of the IFD at an absolute position.

    Stops after the declared number of entries or at the first entry that
    does not fit in the buffer, whichever comes first.  An IFD whose count
    field lies outside the buffer yields nothing.
    """
    num_entries = read_ifd_count(data, ifd_position, endian)
    if num_entries is None:
        return

    pos = ifd_position + 2
    for _ in range(num_entries):
        if pos + IFD_ENTRY_SIZE > len(data):
            break
        tag_id, dtype, count, value = struct.unpack_from(
            endian + 'HHII', data, pos)
        yield IFDEntry(tag_id, dtype, count, value, pos)
        pos += IFD_ENTRY_SIZE


def sub_ifd_position(entry: IFDEntry) -> Optional[int]:
    """Absolute position of the directory a pointer entry refers to."""
    if entry.value == 0:
        return None
    return TIFF_HEADER_START + entry.value
