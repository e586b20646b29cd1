"""Shared test fixtures -- synthetic EXIF block, JPEG and PNG generators."""

import struct
import zlib

import pytest

EXIF_POINTER = 0x8769

DATE_VALUE = b'2023:01:01 12:00:00\x00'


def _pack_ifd(entries, start, endian):
    """Pack one IFD plus its out-of-line data.

    Args:
        entries: List of (tag_id, type_id, count, value_or_bytes) tuples.
            Ints are stored inline; bytes are stored after the IFD and the
            entry holds their TIFF-relative offset.
        start: TIFF-relative offset where this IFD will be placed.
        endian: '<' or '>'.
    """
    n = len(entries)
    data_start = start + 2 + 12 * n + 4
    ifd_bytes = struct.pack(endian + 'H', n)
    data_bytes = b''
    for tag_id, type_id, count, value in entries:
        if isinstance(value, bytes):
            ifd_bytes += struct.pack(endian + 'HHII', tag_id, type_id, count,
                                     data_start + len(data_bytes))
            data_bytes += value
        else:
            ifd_bytes += struct.pack(endian + 'HHII', tag_id, type_id, count, value)
    ifd_bytes += struct.pack(endian + 'I', 0)  # No next IFD
    return ifd_bytes + data_bytes


def _ifd_size(entries):
    ool = sum(len(v) for _, _, _, v in entries if isinstance(v, bytes))
    return 2 + 12 * len(entries) + 4 + ool


def build_exif_block(ifd0_entries, exif_entries=None, endian='<',
                     prefix=b'Exif\x00\x00'):
    """Build an APP1/eXIf payload: prefix + TIFF header + IFD0 [+ Exif sub-IFD].

    When exif_entries is given, a 0x8769 pointer entry is appended to IFD0
    and the sub-IFD is placed right after IFD0's data.

    Returns:
        bytes: The complete payload.
    """
    bo = b'II' if endian == '<' else b'MM'
    ifd0 = list(ifd0_entries)
    sub_offset = None
    if exif_entries is not None:
        ifd0.append((EXIF_POINTER, 4, 1, 0))
        sub_offset = 8 + _ifd_size(ifd0)
        ifd0[-1] = (EXIF_POINTER, 4, 1, sub_offset)

    tiff = bo + struct.pack(endian + 'HI', 42, 8) + _pack_ifd(ifd0, 8, endian)
    if exif_entries is not None:
        tiff += _pack_ifd(exif_entries, sub_offset, endian)
    return prefix + tiff


def entry_offsets(block, endian='<'):
    """Map tag -> absolute entry offset for IFD0 and the Exif sub-IFD of a block.

    Independent of the package's parser so tests can check its output.
    """
    offsets = {}

    def walk(pos, follow):
        (n,) = struct.unpack_from(endian + 'H', block, pos)
        for i in range(n):
            entry = pos + 2 + 12 * i
            tag, _, _, value = struct.unpack_from(endian + 'HHII', block, entry)
            offsets.setdefault(tag, entry)
            if follow and tag == EXIF_POINTER:
                walk(6 + value, False)

    (ifd0,) = struct.unpack_from(endian + 'I', block, 10)
    walk(6 + ifd0, True)
    return offsets


def value_field(data, entry_offset):
    """The raw 4-byte value/offset field of an entry."""
    return data[entry_offset + 8:entry_offset + 12]


def jpeg_segment(code, payload):
    return b'\xff' + bytes([code]) + struct.pack('>H', len(payload) + 2) + payload


def build_jpeg(*app1_payloads, scan_data=b'\x12\x34\xff\x00\x56\x78'):
    """Build a minimal JPEG: SOI, APP0, APP1 segments, DQT, SOS, scan data, EOI."""
    out = b'\xff\xd8'
    out += jpeg_segment(0xE0, b'JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00')
    for payload in app1_payloads:
        out += jpeg_segment(0xE1, payload)
    out += jpeg_segment(0xDB, b'\x00' + bytes(range(64)))
    out += jpeg_segment(0xDA, b'\x01\x01\x00\x00\x3f\x00')
    out += scan_data
    out += b'\xff\xd9'
    return out


def png_chunk(chunk_type, data):
    crc = zlib.crc32(data, zlib.crc32(chunk_type)) & 0xFFFFFFFF
    return struct.pack('>I', len(data)) + chunk_type + data + struct.pack('>I', crc)


PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'


def build_png(exif_data=None, extra_chunks=()):
    """Build a minimal 1x1 PNG, optionally with an eXIf chunk before IDAT."""
    out = PNG_SIGNATURE
    out += png_chunk(b'IHDR', struct.pack('>IIBBBBB', 1, 1, 8, 2, 0, 0, 0))
    for chunk_type, data in extra_chunks:
        out += png_chunk(chunk_type, data)
    if exif_data is not None:
        out += png_chunk(b'eXIf', exif_data)
    out += png_chunk(b'IDAT', zlib.compress(b'\x00\xff\x00\x00'))
    out += png_chunk(b'IEND', b'')
    return out


def sample_exif_block(endian='<'):
    """An EXIF block touching every category.

    IFD0: Make, DateTime, Copyright, GPS pointer, Exif pointer.
    Exif sub-IFD: ExifVersion, DateTimeOriginal, FNumber, Flash, UserComment.
    """
    make = b'Canon\x00'
    copyright_ = b'ACME Photo Ltd\x00'
    comment = b'ASCII\x00\x00\x00secret note'
    ifd0 = [
        (0x010F, 2, len(make), make),                  # Make
        (0x0132, 2, len(DATE_VALUE), DATE_VALUE),      # DateTime
        (0x8298, 2, len(copyright_), copyright_),      # Copyright
        (0x8825, 4, 1, 0x00000200),                    # GPS IFD pointer
    ]
    exif = [
        (0x9000, 7, 4, 0x30333230),                    # ExifVersion "0230"
        (0x9003, 2, len(DATE_VALUE), DATE_VALUE),      # DateTimeOriginal
        (0x829D, 5, 1, b'\x00\x00\x00\x1c\x00\x00\x00\x0a'),  # FNumber
        (0x9209, 3, 1, 0x0010),                        # Flash
        (0x9286, 7, len(comment), comment),            # UserComment
    ]
    return build_exif_block(ifd0, exif, endian=endian)


# ---------------------------------------------------------------------------
# File fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def exif_block():
    return sample_exif_block()


@pytest.fixture
def tmp_jpeg(tmp_path):
    """A JPEG with a little-endian EXIF APP1 segment."""
    filepath = tmp_path / 'photo.jpg'
    filepath.write_bytes(build_jpeg(sample_exif_block('<')))
    return filepath


@pytest.fixture
def tmp_jpeg_big_endian(tmp_path):
    filepath = tmp_path / 'photo_mm.jpg'
    filepath.write_bytes(build_jpeg(sample_exif_block('>')))
    return filepath


@pytest.fixture
def tmp_png(tmp_path):
    """A PNG with an eXIf chunk carrying the sample block."""
    filepath = tmp_path / 'image.png'
    filepath.write_bytes(build_png(sample_exif_block('<')))
    return filepath


@pytest.fixture
def tmp_jpeg_no_exif(tmp_path):
    filepath = tmp_path / 'plain.jpg'
    filepath.write_bytes(build_jpeg())
    return filepath


@pytest.fixture
def image_dir(tmp_path):
    """A directory tree with two JPEGs, one PNG and an unrelated file."""
    root = tmp_path / 'images'
    (root / 'sub').mkdir(parents=True)
    (root / 'a.jpg').write_bytes(build_jpeg(sample_exif_block('<')))
    (root / 'sub' / 'b.jpeg').write_bytes(build_jpeg(sample_exif_block('>')))
    (root / 'c.png').write_bytes(build_png(sample_exif_block('<')))
    (root / 'notes.txt').write_text('not an image')
    return root
