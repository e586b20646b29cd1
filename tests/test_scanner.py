"""Tests for read-only EXIF scanning."""

import io

import pytest

from exifredact.errors import FormatError, UnsupportedFormat
from exifredact.models import RedactionPolicy
from exifredact.redaction import redact_file
from exifredact.scanner import (
    remaining_findings,
    scan_exif_block,
    scan_file,
    scan_stream,
)
from tests.conftest import (
    build_exif_block,
    build_jpeg,
    build_png,
    entry_offsets,
    sample_exif_block,
)


class TestScanExifBlock:
    def test_lists_both_directories(self, exif_block):
        byte_order, findings = scan_exif_block(exif_block, 'APP1')
        assert byte_order == 'II'
        assert [(f.ifd, f.tag_id) for f in findings] == [
            ('IFD0', 0x010F), ('IFD0', 0x0132), ('IFD0', 0x8298),
            ('IFD0', 0x8825), ('IFD0', 0x8769),
            ('ExifIFD', 0x9000), ('ExifIFD', 0x9003), ('ExifIFD', 0x829D),
            ('ExifIFD', 0x9209), ('ExifIFD', 0x9286),
        ]
        assert all(f.source == 'APP1' for f in findings)

    def test_finding_details(self, exif_block):
        _, findings = scan_exif_block(exif_block)
        by_tag = {f.tag_id: f for f in findings}
        assert by_tag[0x8298].categories == ('copyright', 'user_info')
        assert by_tag[0x8298].out_of_line
        assert by_tag[0x8298].tag_name == 'Copyright'
        assert not by_tag[0x9209].out_of_line
        assert by_tag[0x9209].value == 0x10
        assert by_tag[0x8769].categories == ()

    def test_entry_offsets(self, exif_block):
        _, findings = scan_exif_block(exif_block)
        offsets = entry_offsets(exif_block)
        assert all(f.entry_offset == offsets[f.tag_id] for f in findings)

    def test_big_endian(self):
        byte_order, findings = scan_exif_block(sample_exif_block('>'))
        assert byte_order == 'MM'
        assert len(findings) == 10

    def test_not_exif(self):
        assert scan_exif_block(b'http://ns.adobe.com/xap/1.0/\x00') == (None, [])

    def test_null_sub_ifd_pointer(self):
        block = build_exif_block([(0x0132, 4, 1, 5), (0x8769, 4, 1, 0)])
        _, findings = scan_exif_block(block)
        assert [f.ifd for f in findings] == ['IFD0', 'IFD0']


class TestRemainingFindings:
    def test_without_policy_counts_every_category(self, exif_block):
        _, findings = scan_exif_block(exif_block)
        remaining = remaining_findings(findings)
        assert 0x8769 not in {f.tag_id for f in remaining}
        assert len(remaining) == 9

    def test_with_policy(self, exif_block):
        _, findings = scan_exif_block(exif_block)
        remaining = remaining_findings(findings, RedactionPolicy(remove_gps_info=True))
        assert [f.tag_id for f in remaining] == [0x8825]


class TestScanStream:
    def test_jpeg(self):
        fmt, byte_order, blocks, findings = scan_stream(
            io.BytesIO(build_jpeg(sample_exif_block())))
        assert (fmt, byte_order, blocks) == ('jpeg', 'II', 1)
        assert len(findings) == 10

    def test_xmp_app1_not_counted(self):
        data = build_jpeg(b'http://ns.adobe.com/xap/1.0/\x00<x/>', sample_exif_block())
        _, byte_order, blocks, _ = scan_stream(io.BytesIO(data))
        assert (byte_order, blocks) == ('II', 1)
        _, byte_order, blocks, findings = scan_stream(
            io.BytesIO(build_jpeg(b'http://ns.adobe.com/xap/1.0/\x00<x/>')))
        assert (byte_order, blocks, findings) == (None, 0, [])

    def test_png(self):
        fmt, _, blocks, findings = scan_stream(io.BytesIO(build_png(sample_exif_block())))
        assert (fmt, blocks) == ('png', 1)
        assert {f.source for f in findings} == {'eXIf'}

    def test_unsupported(self):
        with pytest.raises(UnsupportedFormat):
            scan_stream(io.BytesIO(b'BM\x00\x00'))

    def test_truncated(self):
        data = build_png(sample_exif_block())
        with pytest.raises(FormatError):
            scan_stream(io.BytesIO(data[:-3]))


class TestScanFile:
    def test_scan_jpeg_with_metadata(self, tmp_jpeg):
        result = scan_file(tmp_jpeg)
        assert result.error is None
        assert result.format == 'jpeg'
        assert not result.is_clean
        assert result.exif_blocks == 1
        assert result.file_size == tmp_jpeg.stat().st_size

    def test_scan_no_exif(self, tmp_jpeg_no_exif):
        result = scan_file(tmp_jpeg_no_exif)
        assert result.is_clean
        assert result.findings == []
        assert result.byte_order is None

    def test_scan_after_redaction(self, tmp_png):
        redact_file(tmp_png, policy=RedactionPolicy.all())
        result = scan_file(tmp_png)
        assert result.is_clean
        # Entries remain, only their values are zeroed
        assert len(result.findings) == 10

    def test_scan_scoped_by_policy(self, tmp_jpeg):
        redact_file(tmp_jpeg, policy=RedactionPolicy(remove_gps_info=True))
        assert scan_file(tmp_jpeg, RedactionPolicy(remove_gps_info=True)).is_clean
        assert not scan_file(tmp_jpeg).is_clean

    def test_scan_is_read_only(self, tmp_jpeg):
        before = tmp_jpeg.read_bytes()
        scan_file(tmp_jpeg)
        assert tmp_jpeg.read_bytes() == before

    def test_unsupported_reported(self, tmp_path):
        path = tmp_path / 'x.png'
        path.write_bytes(b'GIF89a')
        result = scan_file(path)
        assert result.error is not None
        assert result.format == 'unknown'
        assert not result.is_clean

    def test_truncated_reported(self, tmp_path):
        data = build_jpeg(sample_exif_block())
        path = tmp_path / 'cut.jpg'
        path.write_bytes(data[:data.index(b'\xff\xe1') + 25])
        result = scan_file(path)
        assert result.format == 'jpeg'
        assert 'Truncated' in result.error
