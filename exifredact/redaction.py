"""Core redaction entry points -- stream, single file, and batch processing.

Supports both sequential and parallel (thread pool) batch processing.  Every
call owns its own buffers; nothing is shared between concurrent redactions.
"""

import dataclasses
import hashlib
import io
import logging
import os
import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Tuple

from exifredact.exif.redactor import redact_exif_block
from exifredact.formats import detect_format, get_handler, sniff
from exifredact.models import (
    BatchResult,
    RedactionPolicy,
    RedactionResult,
    TagFinding,
)
from exifredact.scanner import finding_from_entry

logger = logging.getLogger(__name__)

EXTENSIONS_BY_FORMAT = {
    'jpeg': frozenset({'.jpg', '.jpeg', '.jpe', '.jfif'}),
    'png': frozenset({'.png'}),
}
IMAGE_EXTENSIONS = EXTENSIONS_BY_FORMAT['jpeg'] | EXTENSIONS_BY_FORMAT['png']


def redact(src: BinaryIO, dst: BinaryIO, policy: RedactionPolicy,
           fix_png_crc: bool = False) -> List[TagFinding]:
    """Redact EXIF categories from a JPEG or PNG stream.

    ``src`` must be seekable; its format is detected from the leading bytes
    and the stream is rewound before walking.  The rewritten image is
    assembled in memory and written to ``dst`` in one call only after the
    whole input has been processed, so nothing is written on failure.

    Args:
        src: Readable, seekable binary stream positioned at the signature.
        dst: Writable binary stream.
        policy: Categories to remove.
        fix_png_crc: Recompute the CRC of rewritten PNG eXIf chunks.  Off by
            default, which leaves the original CRC in place.

    Returns:
        The tags whose value fields held data and were zeroed, as they
        stand in the output (value 0).

    Raises:
        UnsupportedFormat: The signature is neither JPEG nor PNG.
        FormatError: The container is truncated or structurally invalid,
            or an EXIF block has an invalid byte-order marker.
        OSError: The underlying stream failed.
    """
    handler = get_handler(sniff(src), fix_png_crc=fix_png_crc)
    source = 'APP1' if handler.format_name == 'jpeg' else 'eXIf'
    cleared = []

    def transform(payload: bytearray) -> bytearray:
        return redact_exif_block(payload, policy, cleared=cleared)

    output = io.BytesIO()
    handler.rewrite(src, output, transform)
    dst.write(output.getvalue())

    return [dataclasses.replace(finding_from_entry(entry, ifd, source), value=0)
            for ifd, entry in cleared]


def redact_bytes(data: bytes, policy: RedactionPolicy,
                 fix_png_crc: bool = False) -> bytes:
    """Convenience wrapper around redact() for in-memory images."""
    out = io.BytesIO()
    redact(io.BytesIO(data), out, policy, fix_png_crc=fix_png_crc)
    return out.getvalue()


def _replace_file(target: Path, data: bytes, mode_from: Path):
    """Write ``data`` to a temporary file beside ``target``, then swap it in.

    ``target`` keeps its previous content if anything fails before the
    final rename.  Permission bits are copied from ``mode_from``.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f'.{target.name}.', dir=target.parent)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        shutil.copymode(mode_from, tmp_path)
        os.replace(tmp_path, target)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def redact_file(
    filepath: Path,
    output_path: Optional[Path] = None,
    policy: Optional[RedactionPolicy] = None,
    verify: bool = True,
    dry_run: bool = False,
    fix_png_crc: bool = False,
) -> RedactionResult:
    """Redact a single image file.

    Args:
        filepath: Path to the source file.
        output_path: If provided, write the redacted image here (copy mode).
                     If None, rewrite the source file in place.
        policy: Categories to remove (default: nothing).
        verify: If True, re-scan the output to confirm targeted tags are zeroed.
        dry_run: If True, only report what would be cleared -- write nothing.
        fix_png_crc: Recompute CRCs of rewritten PNG eXIf chunks.

    Returns:
        RedactionResult with details of what was done.  Errors are reported
        in ``RedactionResult.error``; no output is written for a failed file.
    """
    filepath = Path(filepath)
    policy = policy or RedactionPolicy.default()
    t0 = time.monotonic()

    if output_path is not None:
        mode = "copy"
        target = Path(output_path)
    else:
        mode = "inplace"
        target = filepath

    if not filepath.exists():
        return RedactionResult(
            source_path=filepath, output_path=target, mode=mode,
            error=f"File not found: {filepath}",
        )

    output = io.BytesIO()
    fmt = 'unknown'
    try:
        with open(filepath, 'rb') as f:
            fmt = detect_format(sniff(f))
            cleared = redact(f, output, policy, fix_png_crc=fix_png_crc)
    except Exception as e:
        elapsed = (time.monotonic() - t0) * 1000
        logger.debug('Redaction failed for %s: %s', filepath, e)
        return RedactionResult(
            source_path=filepath, output_path=target, mode=mode, format=fmt,
            redaction_time_ms=elapsed, error=str(e),
        )

    if dry_run:
        elapsed = (time.monotonic() - t0) * 1000
        return RedactionResult(
            source_path=filepath, output_path=target, mode=mode, format=fmt,
            tags_cleared=len(cleared), cleared=cleared,
            redaction_time_ms=elapsed,
        )

    data = output.getvalue()
    try:
        _replace_file(target, data, filepath)
    except OSError as e:
        elapsed = (time.monotonic() - t0) * 1000
        return RedactionResult(
            source_path=filepath, output_path=target, mode=mode, format=fmt,
            redaction_time_ms=elapsed, error=str(e),
        )

    verified = False
    if verify:
        from exifredact.verify import verify_file
        verified = verify_file(target, policy).is_clean

    elapsed = (time.monotonic() - t0) * 1000
    return RedactionResult(
        source_path=filepath, output_path=target, mode=mode, format=fmt,
        tags_cleared=len(cleared), cleared=cleared, verified=verified,
        redaction_time_ms=elapsed,
        sha256_after=hashlib.sha256(data).hexdigest(),
    )


def collect_image_files(path: Path, format_filter: Optional[str] = None) -> List[Path]:
    """All JPEG/PNG files under ``path`` by extension, sorted.

    A file path is returned as-is, whatever its extension.  ``format_filter``
    ("jpeg" or "png") narrows the extensions considered.
    """
    path = Path(path)
    if path.is_file():
        return [path]
    wanted = EXTENSIONS_BY_FORMAT.get(format_filter, IMAGE_EXTENSIONS)
    return sorted(p for p in path.rglob('*')
                  if p.suffix.lower() in wanted and p.is_file())


def _plan_jobs(files: List[Path], input_path: Path,
               output_dir: Optional[Path]) -> List[Tuple[Path, Optional[Path]]]:
    """Pair each source with its copy-mode target (None for in-place).

    Copy mode mirrors the directory layout below ``input_path``.
    """
    if output_dir is None:
        return [(src, None) for src in files]
    output_dir = Path(output_dir)
    if not input_path.is_dir():
        return [(src, output_dir / src.name) for src in files]
    return [(src, output_dir / src.relative_to(input_path)) for src in files]


def _tally(batch: BatchResult, result: RedactionResult):
    if result.error:
        batch.files_errored += 1
    elif result.tags_cleared:
        batch.files_redacted += 1
    else:
        batch.files_already_clean += 1


def redact_batch(
    input_path: Path,
    output_dir: Optional[Path] = None,
    policy: Optional[RedactionPolicy] = None,
    verify: bool = True,
    dry_run: bool = False,
    format_filter: Optional[str] = None,
    progress_callback: Optional[Callable] = None,
    workers: int = 1,
    fix_png_crc: bool = False,
) -> BatchResult:
    """Run redact_file() over every image under ``input_path``.

    With ``workers`` > 1 files are processed on a thread pool; results keep
    the sorted file order either way.  ``progress_callback(done, total,
    filepath, result)`` fires on the calling thread as each file finishes.
    A file that fails is counted in ``files_errored`` and never stops the
    batch.
    """
    input_path = Path(input_path)
    t0 = time.monotonic()

    jobs = _plan_jobs(collect_image_files(input_path, format_filter),
                      input_path, output_dir)
    batch = BatchResult(total_files=len(jobs))
    results: List[Optional[RedactionResult]] = [None] * len(jobs)

    def run(src: Path, dst: Optional[Path]) -> RedactionResult:
        try:
            return redact_file(src, output_path=dst, policy=policy,
                               verify=verify, dry_run=dry_run,
                               fix_png_crc=fix_png_crc)
        except Exception as e:
            logger.debug('Unexpected failure on %s', src, exc_info=True)
            return RedactionResult(source_path=src, output_path=dst or src,
                                   mode='copy' if dst else 'inplace',
                                   error=str(e))

    def finished(n: int, result: RedactionResult, done: int):
        results[n] = result
        _tally(batch, result)
        if progress_callback:
            progress_callback(done, len(jobs), jobs[n][0], result)

    if workers > 1 and len(jobs) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            pending = {pool.submit(run, src, dst): n
                       for n, (src, dst) in enumerate(jobs)}
            for done, future in enumerate(as_completed(pending), 1):
                finished(pending[future], future.result(), done)
    else:
        for n, (src, dst) in enumerate(jobs):
            finished(n, run(src, dst), n + 1)

    batch.results = results
    batch.total_time_seconds = time.monotonic() - t0
    return batch
