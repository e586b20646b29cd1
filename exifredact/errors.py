"""Exception types raised by the redaction core."""


class ExifRedactError(Exception):
    """Base class for all exifredact errors."""


class UnsupportedFormat(ExifRedactError):
    """The input signature is neither JPEG nor PNG."""


class FormatError(ExifRedactError):
    """The container or EXIF header is structurally invalid or truncated."""
