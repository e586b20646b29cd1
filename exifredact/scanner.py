"""Read-only EXIF inspection -- list the tags present in an image.

Walks the same two directories the redactor touches (IFD0 and the Exif
sub-IFD) and reports every entry with its category.  The container is
streamed through the regular JPEG/PNG walkers with a pass-through
transform, so scanning sees exactly the payloads redaction would.
"""

import io
import os
import time
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from exifredact.exif.parser import (
    IFDEntry,
    iter_ifd,
    read_exif_header,
    sub_ifd_position,
)
from exifredact.exif.tags import EXIF_IFD_POINTER_TAG, categories_for_tag
from exifredact.formats import detect_format, get_handler, sniff
from exifredact.models import RedactionPolicy, ScanResult, TagFinding


def finding_from_entry(entry: IFDEntry, ifd: str, source: str = '') -> TagFinding:
    return TagFinding(
        tag_id=entry.tag_id,
        tag_name=entry.tag_name,
        ifd=ifd,
        dtype=entry.dtype,
        count=entry.count,
        value=entry.value,
        categories=categories_for_tag(entry.tag_id),
        out_of_line=not entry.is_inline,
        source=source,
        entry_offset=entry.entry_offset,
    )


def scan_exif_block(data: bytes, source: str = '') -> Tuple[Optional[str], List[TagFinding]]:
    """List the entries of IFD0 and the Exif sub-IFD of one EXIF payload.

    Returns (byte_order, findings).  byte_order is None when the payload
    is not TIFF-structured EXIF; findings is then empty.

    Raises FormatError if the byte-order marker is invalid.
    """
    header = read_exif_header(data)
    if header is None:
        return None, []

    findings = []
    for entry in iter_ifd(data, header.ifd0_position, header.endian):
        findings.append(finding_from_entry(entry, 'IFD0', source))
        if entry.tag_id != EXIF_IFD_POINTER_TAG:
            continue
        sub_position = sub_ifd_position(entry)
        if sub_position is None:
            continue
        for sub_entry in iter_ifd(data, sub_position, header.endian):
            findings.append(finding_from_entry(sub_entry, 'ExifIFD', source))
    return header.byte_order, findings


def remaining_findings(findings: List[TagFinding],
                       policy: Optional[RedactionPolicy] = None) -> List[TagFinding]:
    """Findings that still carry categorized metadata.

    With a policy, only tags that policy targets are considered; without
    one, any tag belonging to a category counts.
    """
    if policy is not None:
        targets = policy.targeted_tags()
        return [f for f in findings
                if f.tag_id in targets and not f.is_zeroed]
    return [f for f in findings if f.categories and not f.is_zeroed]


def scan_stream(src: BinaryIO) -> Tuple[str, Optional[str], int, List[TagFinding]]:
    """Scan an image stream for EXIF tags.

    Returns (format, byte_order, exif_blocks, findings).  exif_blocks counts
    only payloads with a TIFF-structured EXIF header, so XMP and other
    APP1 users are not included.

    Raises UnsupportedFormat or FormatError like redaction would.
    """
    handler = get_handler(sniff(src))
    source = 'APP1' if handler.format_name == 'jpeg' else 'eXIf'
    findings: List[TagFinding] = []
    byte_orders: List[str] = []

    def visit(payload: bytearray) -> bytearray:
        byte_order, block_findings = scan_exif_block(payload, source)
        if byte_order is not None:
            byte_orders.append(byte_order)
        findings.extend(block_findings)
        return payload

    handler.rewrite(src, io.BytesIO(), visit)
    byte_order = byte_orders[0] if byte_orders else None
    return handler.format_name, byte_order, len(byte_orders), findings


def scan_file(filepath: Path,
              policy: Optional[RedactionPolicy] = None) -> ScanResult:
    """Scan a single image file.  Read-only.

    ``is_clean`` is True when no tag of a targeted category (every
    category, if no policy is given) still holds a non-zero value field.
    Errors are reported in ``ScanResult.error`` rather than raised.
    """
    filepath = Path(filepath)
    t0 = time.monotonic()
    try:
        file_size = os.path.getsize(filepath)
    except OSError:
        file_size = 0

    fmt = 'unknown'
    try:
        with open(filepath, 'rb') as f:
            fmt = detect_format(sniff(f))
            fmt, byte_order, blocks, findings = scan_stream(f)
    except Exception as e:
        return ScanResult(
            filepath=filepath, format=fmt, is_clean=False,
            scan_time_ms=(time.monotonic() - t0) * 1000,
            file_size=file_size, error=str(e),
        )

    return ScanResult(
        filepath=filepath,
        format=fmt,
        findings=findings,
        byte_order=byte_order,
        exif_blocks=blocks,
        is_clean=not remaining_findings(findings, policy),
        scan_time_ms=(time.monotonic() - t0) * 1000,
        file_size=file_size,
    )
