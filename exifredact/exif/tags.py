"""EXIF tag identifiers, names, and the category table used for redaction."""

from typing import Dict, FrozenSet, Tuple

EXIF_IFD_POINTER_TAG = 0x8769
GPS_IFD_POINTER_TAG = 0x8825
COPYRIGHT_TAG = 0x8298

# Category names, in the order they appear in reports and the CLI
CATEGORY_CAMERA = 'camera'
CATEGORY_GPS = 'gps'
CATEGORY_COPYRIGHT = 'copyright'
CATEGORY_DATETIME = 'datetime'
CATEGORY_USER_INFO = 'user_info'
CATEGORY_TECHNICAL = 'technical'

# Static category -> tag table.  Copyright (0x8298) sits in both the
# user-info and copyright categories.
CATEGORY_TAGS: Dict[str, FrozenSet[int]] = {
    CATEGORY_CAMERA: frozenset({0x010F, 0x0110, 0x9000, 0xA000}),
    CATEGORY_GPS: frozenset({GPS_IFD_POINTER_TAG}),
    CATEGORY_COPYRIGHT: frozenset({COPYRIGHT_TAG}),
    CATEGORY_DATETIME: frozenset({0x0132, 0x9003, 0x9004}),
    CATEGORY_USER_INFO: frozenset({0x9286, 0x927C, COPYRIGHT_TAG}),
    CATEGORY_TECHNICAL: frozenset({
        0x829A, 0x829D, 0x8822, 0x8827, 0x9201, 0x9202, 0x9204,
        0x9205, 0x9206, 0x9207, 0x9209, 0x920A, 0xA405,
    }),
}

CATEGORIES: Tuple[str, ...] = tuple(CATEGORY_TAGS)

# Well-known tag names (IFD0 and Exif sub-IFD)
TAG_NAMES: Dict[int, str] = {
    0x0100: 'ImageWidth', 0x0101: 'ImageLength', 0x0102: 'BitsPerSample',
    0x0103: 'Compression', 0x010E: 'ImageDescription',
    0x010F: 'Make', 0x0110: 'Model', 0x0112: 'Orientation',
    0x011A: 'XResolution', 0x011B: 'YResolution', 0x0128: 'ResolutionUnit',
    0x0131: 'Software', 0x0132: 'DateTime', 0x013B: 'Artist',
    0x0213: 'YCbCrPositioning',
    0x8298: 'Copyright', 0x829A: 'ExposureTime', 0x829D: 'FNumber',
    0x8769: 'ExifIFDPointer', 0x8822: 'ExposureProgram',
    0x8825: 'GPSInfoIFDPointer', 0x8827: 'ISOSpeedRatings',
    0x9000: 'ExifVersion', 0x9003: 'DateTimeOriginal',
    0x9004: 'DateTimeDigitized', 0x9101: 'ComponentsConfiguration',
    0x9201: 'ShutterSpeedValue', 0x9202: 'ApertureValue',
    0x9204: 'ExposureBiasValue', 0x9205: 'MaxApertureValue',
    0x9206: 'SubjectDistance', 0x9207: 'MeteringMode', 0x9209: 'Flash',
    0x920A: 'FocalLength', 0x927C: 'MakerNote', 0x9286: 'UserComment',
    0xA000: 'FlashpixVersion', 0xA001: 'ColorSpace',
    0xA002: 'PixelXDimension', 0xA003: 'PixelYDimension',
    0xA405: 'FocalLengthIn35mmFilm', 0xA420: 'ImageUniqueID',
}


def tag_name(tag_id: int) -> str:
    return TAG_NAMES.get(tag_id, f'Tag_0x{tag_id:04X}')


def categories_for_tag(tag_id: int) -> Tuple[str, ...]:
    """Return every category that covers ``tag_id`` (possibly empty)."""
    return tuple(name for name, tags in CATEGORY_TAGS.items()
                 if tag_id in tags)
