"""Post-redaction checks -- re-scan output and list tags that still hold data."""

from pathlib import Path
from typing import Callable, List, Optional

from exifredact.models import RedactionPolicy, ScanResult
from exifredact.redaction import collect_image_files
from exifredact.scanner import remaining_findings, scan_file


def verify_file(filepath: Path, policy: Optional[RedactionPolicy] = None) -> ScanResult:
    """Re-scan one file.

    ``findings`` is narrowed to entries that the policy targets (any
    categorized entry when policy is None) and whose value field is still
    non-zero, so ``is_clean`` and an empty ``findings`` coincide unless the
    scan itself failed.
    """
    result = scan_file(filepath, policy)
    if result.error is None:
        result.findings = remaining_findings(result.findings, policy)
    return result


def verify_batch(
    path: Path,
    policy: Optional[RedactionPolicy] = None,
    format_filter: Optional[str] = None,
    progress_callback: Optional[Callable] = None,
) -> List[ScanResult]:
    """verify_file() over every image under ``path``, in sorted order.

    ``progress_callback(index, total, filepath, result)`` is called after
    each file.  Per-file failures come back as results with ``error`` set.
    """
    files = collect_image_files(Path(path), format_filter)
    results = []
    for index, filepath in enumerate(files, 1):
        result = verify_file(filepath, policy)
        results.append(result)
        if progress_callback:
            progress_callback(index, len(files), filepath, result)
    return results
