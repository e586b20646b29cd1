"""EXIF/TIFF directory parsing and redaction package.

Re-exports the public names so callers can use ``from exifredact.exif import X``.
"""

# --- tags.py: tag identifiers, names, category table ---
from exifredact.exif.tags import (  # noqa: F401
    CATEGORIES,
    CATEGORY_TAGS,
    COPYRIGHT_TAG,
    EXIF_IFD_POINTER_TAG,
    GPS_IFD_POINTER_TAG,
    TAG_NAMES,
    categories_for_tag,
    tag_name,
)

# --- parser.py: EXIF header and IFD reading ---
from exifredact.exif.parser import (  # noqa: F401
    EXIF_PREFIX,
    IFD_ENTRY_SIZE,
    TIFF_HEADER_START,
    ExifHeader,
    IFDEntry,
    has_exif_prefix,
    iter_ifd,
    read_exif_header,
    read_ifd_count,
    sub_ifd_position,
)

# --- redactor.py: in-place value-field zeroing ---
from exifredact.exif.redactor import (  # noqa: F401
    redact_exif_block,
    redact_ifd,
    zero_value_field,
)
