"""In-place EXIF tag redaction.

Only the 4-byte value/offset field of a targeted IFD entry is zeroed; the
tag, type and count fields stay untouched so every directory keeps its
layout and the payload keeps its length.
"""

import logging
from typing import List, Optional, Tuple

from exifredact.exif.parser import (
    IFDEntry,
    iter_ifd,
    read_exif_header,
    sub_ifd_position,
)
from exifredact.exif.tags import EXIF_IFD_POINTER_TAG

logger = logging.getLogger(__name__)

_ZERO_FIELD = b'\x00' * 4


def zero_value_field(data: bytearray, entry: IFDEntry):
    """Overwrite an entry's value/offset field with zeros."""
    pos = entry.value_field_offset
    data[pos:pos + 4] = _ZERO_FIELD


def redact_ifd(data: bytearray, ifd_position: int, endian: str, policy,
               follow_exif_ifd: bool = True, ifd_name: str = 'IFD0',
               cleared: Optional[List[Tuple[str, IFDEntry]]] = None) -> int:
    """Zero the value field of every entry the policy targets.

    Args:
        data: The EXIF payload, modified in place.
        ifd_position: Absolute position of the directory in ``data``.
        endian: struct byte-order prefix ("<" or ">").
        policy: RedactionPolicy deciding which tags are zeroed.
        follow_exif_ifd: Walk the Exif sub-IFD named by tag 0x8769.  Only
            IFD0 follows it; the sub-IFD itself is walked with this off.
        ifd_name: Label recorded with cleared entries ("IFD0" | "ExifIFD").
        cleared: If given, (ifd_name, entry) pairs are appended for entries
            whose value field held data before being zeroed.

    Returns the number of entries whose value field was non-zero and got
    zeroed.  A directory that is out of range or truncated is redacted as
    far as it is reachable.
    """
    targets = policy.targeted_tags()
    total = 0

    for entry in iter_ifd(data, ifd_position, endian):
        if entry.tag_id == EXIF_IFD_POINTER_TAG:
            # Structural pointer: always followed, never zeroed
            if follow_exif_ifd:
                sub_position = sub_ifd_position(entry)
                if sub_position is not None:
                    total += redact_ifd(data, sub_position, endian, policy,
                                        follow_exif_ifd=False,
                                        ifd_name='ExifIFD',
                                        cleared=cleared)
            continue

        if entry.tag_id not in targets:
            continue
        if entry.value != 0:
            total += 1
            if cleared is not None:
                cleared.append((ifd_name, entry))
        zero_value_field(data, entry)

    return total


def redact_exif_block(data, policy,
                      cleared: Optional[List[Tuple[str, IFDEntry]]] = None) -> bytearray:
    """Redact an APP1 / eXIf payload.

    Returns the same-length buffer with targeted value fields zeroed.  A
    ``bytes`` payload is copied into a new bytearray first; a bytearray is
    modified in place and returned.  Payloads without the ``Exif\\0\\0``
    prefix, or whose IFD0 offset points outside the buffer, are returned
    unchanged.

    Raises FormatError if the byte-order marker is invalid.
    """
    if not isinstance(data, bytearray):
        data = bytearray(data)

    header = read_exif_header(data)
    if header is None:
        logger.debug('Payload is not TIFF-structured EXIF, passing through')
        return data

    if header.ifd0_position + 4 > len(data):
        logger.debug('IFD0 offset %d outside %d-byte payload, passing through',
                     header.first_ifd_offset, len(data))
        return data

    if policy.is_empty:
        return data

    count = redact_ifd(data, header.ifd0_position, header.endian, policy,
                       cleared=cleared)
    logger.debug('Zeroed %d tag value(s) in %s EXIF block',
                 count, header.byte_order)
    return data
