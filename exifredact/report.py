"""Redaction certificates -- a JSON record of a batch run plus a PDF copy.

The JSON certificate is the authoritative record: the policy applied, every
tag whose value field was zeroed, and the SHA-256 of each written file.  The
PDF renders the same dict for people who want something to file or print.
"""

import hashlib
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from fpdf import FPDF

import exifredact
from exifredact.models import BatchResult, RedactionPolicy, RedactionResult


def _hash_output(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for block in iter(lambda: f.read(1 << 16), b''):
            digest.update(block)
    return digest.hexdigest()


def _file_record(result: RedactionResult) -> dict:
    record = {
        'filename': result.output_path.name,
        'source_path': str(result.source_path),
        'output_path': str(result.output_path),
        'format': result.format,
        'tags_cleared': result.tags_cleared,
        'verified_clean': result.verified,
        'redaction_time_ms': round(result.redaction_time_ms, 1),
    }
    if result.cleared:
        record['tags'] = [{
            'tag_id': f'0x{f.tag_id:04X}',
            'tag_name': f.tag_name,
            'ifd': f.ifd,
            'categories': list(f.categories),
            'out_of_line': f.out_of_line,
        } for f in result.cleared]

    if result.error:
        record['error'] = result.error
        return record
    if result.sha256_after:
        record['sha256_after'] = result.sha256_after
    else:
        # Results built by hand may lack the hash; dry runs have no file
        try:
            record['sha256_after'] = _hash_output(result.output_path)
        except OSError:
            pass
    return record


def generate_certificate(
    batch_result: BatchResult,
    policy: RedactionPolicy,
    output_path: Optional[Path] = None,
    pdf: bool = True,
    institution: str = "",
) -> dict:
    """Build the certificate for a redact_batch() run.

    Args:
        batch_result: The BatchResult to certify.
        policy: The policy the batch was run with.
        output_path: Where to write the JSON.  Nothing is written if None.
        pdf: Also write ``<output_path>.pdf`` (only with output_path).
        institution: Organisation name shown in the PDF header.

    Returns:
        The certificate dict, identical to the JSON written.
    """
    results = batch_result.results
    files = [_file_record(r) for r in results]
    tags_cleared = sum(r.tags_cleared for r in results)
    all_verified = bool(results) and all(r.verified for r in results)

    measures = [{
        'measure': f'EXIF {category} tags zeroed',
        'status': 'applied' if tags_cleared else 'not_needed',
    } for category in policy.enabled_categories]
    measures.append({
        'measure': 'Post-redaction verification',
        'status': 'passed' if all_verified else 'skipped',
    })

    certificate = {
        'exifredact_version': exifredact.__version__,
        'certificate_id': str(uuid.uuid4()),
        'generated_at': datetime.now(timezone.utc).isoformat(),
        'institution': institution,
        'mode': results[0].mode if results else 'unknown',
        'policy': policy.to_dict(),
        'summary': {
            'total_files': batch_result.total_files,
            'redacted': batch_result.files_redacted,
            'already_clean': batch_result.files_already_clean,
            'errors': batch_result.files_errored,
            'tags_cleared': tags_cleared,
            'verified': all_verified,
            'total_time_seconds': round(batch_result.total_time_seconds, 2),
        },
        'measures': measures,
        'files': files,
    }

    if output_path is None:
        return certificate

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(certificate, indent=2))
    if pdf:
        generate_pdf_certificate(certificate, output_path.with_suffix('.pdf'),
                                 institution=institution)
    return certificate


# ---------------------------------------------------------------------------
# PDF rendering
# ---------------------------------------------------------------------------

_HEAD_FILL = (45, 55, 72)
_ROW_FILL = (242, 243, 247)
_MUTED = (115, 115, 115)

_STATUS_COLORS = {
    'applied': (34, 139, 34),
    'passed': (34, 139, 34),
    'not_needed': (128, 128, 128),
    'skipped': (200, 150, 0),
}

_CLOSING_NOTE = (
    'Each listed tag had its 4-byte value/offset field overwritten with zeros. '
    'Directory entries, image data and all other segments are unchanged. '
    'Values stored outside the entry are no longer referenced, but their bytes '
    'remain in the file. PNG eXIf chunk CRCs are only recomputed when CRC '
    'repair was requested.'
)


def _pdf_text(text: str, limit: int = 0) -> str:
    """Clip to ``limit`` characters and keep to what core fonts can draw."""
    if limit and len(text) > limit:
        text = text[:limit - 3] + '...'
    return ''.join(c if ' ' <= c <= '~' else '?' for c in text)


class _CertificatePDF(FPDF):
    """A4 portrait page with a title block, section helpers and page numbers."""

    def __init__(self, institution: str = '', version: str = '?'):
        super().__init__(orientation='P', unit='mm', format='A4')
        self.institution = institution
        self.version = version
        self.set_auto_page_break(auto=True, margin=18)

    def header(self):
        self.set_font('Helvetica', 'B', 15)
        self.cell(0, 9, 'EXIF Redaction Certificate', new_x='LMARGIN', new_y='NEXT')
        if self.institution:
            self.set_font('Helvetica', 'B', 11)
            self.cell(0, 6, _pdf_text(self.institution), new_x='LMARGIN', new_y='NEXT')
        self.set_font('Helvetica', '', 8)
        self.set_text_color(*_MUTED)
        self.cell(0, 5, f'exifredact v{self.version}', new_x='LMARGIN', new_y='NEXT')
        self.set_text_color(0, 0, 0)
        y = self.get_y() + 1
        self.line(self.l_margin, y, self.w - self.r_margin, y)
        self.ln(4)

    def footer(self):
        self.set_y(-13)
        self.set_font('Helvetica', 'I', 7)
        self.set_text_color(*_MUTED)
        self.cell(0, 5, f'Page {self.page_no()}/{{nb}}', align='C')
        self.set_text_color(0, 0, 0)

    def heading(self, title: str):
        self.set_font('Helvetica', 'B', 11)
        self.cell(0, 7, title, new_x='LMARGIN', new_y='NEXT')

    def grid(self, widths: Sequence[float], rows: List[Sequence[str]],
              headers: Optional[Sequence[str]] = None, size: int = 8,
              status_col: Optional[int] = None):
        """Draw a shaded table.

        Cells in ``status_col`` are upper-cased and colored by status name.
        Without headers the first column is drawn bold, as labels.
        """
        height = size * 0.7
        last = len(widths) - 1

        def put(i, width, text, fill):
            self.cell(width, height, text, fill=fill,
                      new_x='LMARGIN' if i == last else 'RIGHT',
                      new_y='NEXT' if i == last else 'TOP')

        if headers:
            self.set_font('Helvetica', 'B', size)
            self.set_fill_color(*_HEAD_FILL)
            self.set_text_color(255, 255, 255)
            for i, (width, text) in enumerate(zip(widths, headers)):
                put(i, width, text, True)
            self.set_text_color(0, 0, 0)

        self.set_fill_color(*_ROW_FILL)
        for n, row in enumerate(rows):
            shaded = n % 2 == 0
            for i, (width, value) in enumerate(zip(widths, row)):
                bold = i == status_col or (not headers and i == 0)
                self.set_font('Helvetica', 'B' if bold else '', size)
                if i == status_col:
                    self.set_text_color(*_STATUS_COLORS.get(value, (0, 0, 0)))
                    value = value.upper()
                put(i, width, value, shaded)
                self.set_text_color(0, 0, 0)
        self.ln(3)


def generate_pdf_certificate(certificate: dict, output_path: Path,
                             institution: str = "") -> Path:
    """Render a certificate dict from generate_certificate() as a PDF.

    Returns the output path.  Raises ValueError if the dict lacks
    ``certificate_id``, ``summary`` or ``files``.
    """
    missing = {'certificate_id', 'summary', 'files'} - set(certificate)
    if missing:
        raise ValueError(
            f"Certificate dict is missing required keys: {', '.join(sorted(missing))}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    pdf = _CertificatePDF(institution or certificate.get('institution', ''),
                          certificate.get('exifredact_version', '?'))
    pdf.add_page()

    enabled = [name for name, on in certificate.get('policy', {}).items() if on]
    pdf.grid([40, 150], [
        ('Certificate ID', certificate['certificate_id']),
        ('Generated', certificate.get('generated_at', '-')),
        ('Mode', certificate.get('mode', '-')),
        ('Policy', _pdf_text(', '.join(enabled) or 'none', 90)),
    ], size=9)

    summary = certificate['summary']
    pdf.heading('Summary')
    pdf.grid([60, 130], [
        ('Files', str(summary.get('total_files', 0))),
        ('Redacted', str(summary.get('redacted', 0))),
        ('Already clean', str(summary.get('already_clean', 0))),
        ('Errors', str(summary.get('errors', 0))),
        ('Tags cleared', str(summary.get('tags_cleared', 0))),
        ('All verified', 'Yes' if summary.get('verified') else 'No'),
        ('Elapsed', f'{summary.get("total_time_seconds", 0)}s'),
    ], size=9)

    measures = certificate.get('measures', [])
    if measures:
        pdf.heading('Measures')
        pdf.grid([120, 70], [(m['measure'], m['status']) for m in measures],
                  headers=['Measure', 'Status'], size=9, status_col=1)

    files = certificate['files']
    if files:
        pdf.heading('Files')
        pdf.grid([8, 56, 14, 16, 16, 80], [(
            str(n),
            _pdf_text(rec.get('filename', ''), 36),
            rec.get('format', '?'),
            str(rec.get('tags_cleared', 0)),
            'yes' if rec.get('verified_clean') else 'no',
            _pdf_text(rec.get('sha256_after') or rec.get('error', '-'), 52),
        ) for n, rec in enumerate(files, 1)],
            headers=['#', 'File', 'Format', 'Cleared', 'Verified', 'SHA-256 / error'],
            size=7)

        tag_rows = [(
            _pdf_text(rec.get('filename', ''), 36),
            tag['ifd'],
            f"{tag['tag_id']} {tag['tag_name']}",
            ', '.join(tag['categories']),
            'offset' if tag.get('out_of_line') else 'inline',
        ) for rec in files for tag in rec.get('tags', [])]
        if tag_rows:
            pdf.heading('Cleared tags')
            pdf.grid([56, 20, 56, 36, 22], tag_rows,
                      headers=['File', 'IFD', 'Tag', 'Categories', 'Value'], size=7)

    pdf.set_font('Helvetica', 'I', 8)
    pdf.set_text_color(*_MUTED)
    pdf.multi_cell(0, 4, _CLOSING_NOTE)
    pdf.set_text_color(0, 0, 0)

    pdf.output(str(output_path))
    return output_path
