"""exifredact -- selective EXIF redaction for JPEG and PNG files."""

__version__ = "1.0.0"

from exifredact.errors import ExifRedactError, FormatError, UnsupportedFormat
from exifredact.models import (
    BatchResult,
    RedactionPolicy,
    RedactionResult,
    ScanResult,
    TagFinding,
)
from exifredact.redaction import redact, redact_bytes, redact_file, redact_batch
from exifredact.scanner import scan_file
from exifredact.verify import verify_file, verify_batch
from exifredact.report import generate_certificate, generate_pdf_certificate

__all__ = [
    "__version__",
    "ExifRedactError",
    "FormatError",
    "UnsupportedFormat",
    "RedactionPolicy",
    "TagFinding",
    "ScanResult",
    "RedactionResult",
    "BatchResult",
    "redact",
    "redact_bytes",
    "redact_file",
    "redact_batch",
    "scan_file",
    "verify_file",
    "verify_batch",
    "generate_certificate",
    "generate_pdf_certificate",
]
