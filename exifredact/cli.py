"""CLI interface for exifredact -- redact, scan, verify, info subcommands."""

import json
import sys
import time
from pathlib import Path

import click

import exifredact
from exifredact import log
from exifredact.models import POLICY_FIELDS, RedactionPolicy
from exifredact.redaction import collect_image_files, redact_batch
from exifredact.report import generate_certificate
from exifredact.scanner import remaining_findings, scan_file
from exifredact.verify import verify_batch

_FORMATS = click.Choice(['jpeg', 'png'])

# (option, category, help)
_CATEGORY_OPTIONS = [
    ('--camera', 'camera', 'Remove camera make/model and version tags.'),
    ('--gps', 'gps', 'Remove the GPS directory pointer.'),
    ('--copyright', 'copyright', 'Remove the copyright notice.'),
    ('--datetime', 'datetime', 'Remove date/time tags.'),
    ('--user-info', 'user_info', 'Remove user comment, maker note and copyright.'),
    ('--technical', 'technical', 'Remove exposure and lens details.'),
]


def policy_options(func):
    """Attach the category flags, --all and --policy to a command."""
    for flag, category, help_text in reversed(_CATEGORY_OPTIONS):
        func = click.option(flag, POLICY_FIELDS[category], is_flag=True,
                            help=help_text)(func)
    func = click.option('--all', 'remove_all', is_flag=True,
                        help='Remove every category.')(func)
    func = click.option('--policy', 'policy_file',
                        type=click.Path(exists=True, dir_okay=False),
                        help='JSON policy file; flags are added on top.')(func)
    return func


def build_policy(policy_file, remove_all, **switches) -> RedactionPolicy:
    """Combine a policy file, --all and the per-category flags."""
    if remove_all:
        return RedactionPolicy.all()
    policy = RedactionPolicy.default()
    if policy_file:
        try:
            policy = RedactionPolicy.from_json(policy_file)
        except (ValueError, OSError) as e:
            raise click.BadParameter(str(e), param_hint='--policy')
    return policy.merge(RedactionPolicy(**switches))


def _pop_switches(kwargs) -> dict:
    return {attr: kwargs.pop(attr) for attr in POLICY_FIELDS.values()}


@click.group()
@click.version_option(version=exifredact.__version__, prog_name='exifredact')
@click.option('--debug', is_flag=True, help='Show library debug logging on stderr.')
def main(debug):
    """exifredact -- selective EXIF redaction for JPEG and PNG files.

    Zeroes the values of chosen EXIF tag categories (camera, GPS,
    copyright, date/time, user info, technical details) while leaving
    every other byte of the image untouched.
    """
    log.configure_logging(debug)


@main.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--output', '-o', type=click.Path(),
              help='Output directory (copy mode). If omitted, rewrites in-place.')
@click.option('--in-place', is_flag=True,
              help='Explicitly confirm in-place redaction (required if no --output).')
@click.option('--dry-run', is_flag=True, help='Report only, don\'t write files.')
@click.option('--no-verify', is_flag=True, help='Skip post-redaction verification.')
@click.option('--format', 'fmt', type=_FORMATS, help='Only process files of this format.')
@click.option('--fix-png-crc', is_flag=True,
              help='Recompute the CRC of rewritten PNG eXIf chunks.')
@click.option('--certificate', '-c', type=click.Path(),
              help='Write a redaction certificate JSON (and PDF) to this path.')
@click.option('--workers', '-w', type=int, default=1,
              help='Number of parallel workers (default: 1, sequential).')
@click.option('--verbose', '-v', is_flag=True, help='List every cleared tag.')
@click.option('--log', 'log_path', type=click.Path(), help='Write log to file.')
@policy_options
def redact(path, output, in_place, dry_run, no_verify, fmt, fix_png_crc,
           certificate, workers, verbose, log_path, policy_file, remove_all,
           **kwargs):
    """Redact EXIF categories from JPEG/PNG files.

    PATH can be a single file or a directory to process recursively.
    """
    policy = build_policy(policy_file, remove_all, **_pop_switches(kwargs))
    input_path = Path(path)
    output_dir = Path(output) if output else None

    if output_dir is None and not in_place and not dry_run:
        click.echo(log.cli_error('Error: Must specify --output for copy mode, or '
                                 '--in-place to modify originals directly.'), err=True)
        sys.exit(1)

    log_file = open(log_path, 'w') if log_path else None

    def log_msg(msg, level=log.log_info, styled=None):
        click.echo(styled if styled is not None else msg)
        if log_file:
            log_file.write(level(msg) + '\n')
            log_file.flush()

    if policy.is_empty:
        msg = 'No categories selected; files will be copied unchanged.'
        log_msg(msg, level=log.log_warn, styled=log.cli_warning(msg))

    files = collect_image_files(input_path, format_filter=fmt)
    if not files:
        log_msg(f'No JPEG/PNG files found in {input_path}')
        if log_file:
            log_file.close()
        return

    mode_str = 'DRY RUN' if dry_run else ('copy' if output_dir else 'in-place')
    workers_str = f', {workers} workers' if workers > 1 else ''
    header = f'exifredact v{exifredact.__version__} -- {mode_str} redaction{workers_str}'
    log_msg(header, styled=log.cli_header(header))
    log_msg(f'Categories: {", ".join(policy.enabled_categories) or "none"}')
    log_msg(f'Processing {len(files)} file(s)...\n')

    t0 = time.time()

    def progress(i, total, filepath, result):
        elapsed = time.time() - t0
        rate = i / elapsed if elapsed > 0 else 0

        if result.error:
            status = f'ERROR: {result.error}'
            line = f'  [{i}/{total}] {rate:.1f}/s | {filepath.name} | {status}'
            log_msg(line, level=log.log_error, styled=log.cli_error(line))
        else:
            if result.tags_cleared > 0:
                status = f'cleared {result.tags_cleared} tag(s)'
                if result.verified:
                    status += ' [verified]'
            else:
                status = 'already clean'
            line = f'  [{i}/{total}] {rate:.1f}/s | {filepath.name} | {status}'
            log_msg(line)
        if verbose:
            for f in result.cleared:
                click.echo(log.cli_tag(f))

    batch_result = redact_batch(
        input_path, output_dir=output_dir, policy=policy,
        verify=not no_verify, dry_run=dry_run,
        format_filter=fmt, progress_callback=progress,
        workers=workers, fix_png_crc=fix_png_crc,
    )

    log_msg(f'\nDone in {batch_result.total_time_seconds:.1f}s')
    log_msg(f'  Total:         {batch_result.total_files}')
    log_msg(f'  Redacted:      {batch_result.files_redacted}')
    log_msg(f'  Already clean: {batch_result.files_already_clean}')
    log_msg(f'  Errors:        {batch_result.files_errored}')

    if certificate and not dry_run:
        generate_certificate(batch_result, policy, output_path=Path(certificate))
        batch_result.certificate_path = Path(certificate)
        log_msg(f'\nRedaction certificate: {certificate}')

    if log_file:
        log_file.close()

    if batch_result.files_errored > 0:
        sys.exit(1)


@main.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--verbose', '-v', is_flag=True, help='List every tag found.')
@click.option('--format', 'fmt', type=_FORMATS, help='Only scan files of this format.')
@click.option('--json-out', type=click.Path(), help='Write results as JSON to file.')
def scan(path, verbose, fmt, json_out):
    """List categorized EXIF tags (read-only).

    PATH can be a single file or a directory to scan recursively.
    """
    input_path = Path(path)
    files = collect_image_files(input_path, format_filter=fmt)

    if not files:
        click.echo(f'No JPEG/PNG files found in {input_path}')
        return

    click.echo(f'Scanning {len(files)} file(s)...')

    clean_count = 0
    results_json = []

    for i, filepath in enumerate(files, 1):
        result = scan_file(filepath)
        remaining = remaining_findings(result.findings)

        if result.error:
            click.echo(log.cli_error(f'  [{i}/{len(files)}] {filepath.name} -- '
                                     f'ERROR: {result.error}'))
        elif result.is_clean:
            clean_count += 1
            click.echo(log.cli_success(f'  [{i}/{len(files)}] {filepath.name} -- CLEAN'))
        else:
            click.echo(log.cli_warning(f'  [{i}/{len(files)}] {filepath.name} -- '
                                       f'{len(remaining)} tag(s) with metadata'))
        if verbose:
            for f in result.findings:
                click.echo(log.cli_tag(f))

        if json_out:
            results_json.append({
                'file': str(filepath),
                'format': result.format,
                'byte_order': result.byte_order,
                'is_clean': result.is_clean,
                'tags': [{
                    'tag_id': f'0x{f.tag_id:04X}',
                    'tag_name': f.tag_name,
                    'ifd': f.ifd,
                    'categories': list(f.categories),
                    'zeroed': f.is_zeroed,
                } for f in result.findings],
                'scan_time_ms': round(result.scan_time_ms, 1),
                'error': result.error,
            })

    click.echo(f'\nSummary: {len(files)} files scanned, {clean_count} clean, '
               f'{len(files) - clean_count} with metadata or errors')

    if json_out:
        with open(json_out, 'w') as f:
            json.dump(results_json, f, indent=2)
        click.echo(f'Results written to {json_out}')


@main.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--verbose', '-v', is_flag=True, help='Show remaining tags.')
@click.option('--format', 'fmt', type=_FORMATS, help='Only verify files of this format.')
@policy_options
def verify(path, verbose, fmt, policy_file, remove_all, **kwargs):
    """Verify that files carry no data for the selected categories.

    With no category flags, every category is checked.
    """
    policy = build_policy(policy_file, remove_all, **_pop_switches(kwargs))
    check_policy = None if policy.is_empty else policy

    input_path = Path(path)
    files = collect_image_files(input_path, format_filter=fmt)
    if not files:
        click.echo(f'No JPEG/PNG files found in {input_path}')
        return

    click.echo(f'Verifying {len(files)} file(s)...')

    clean_count = 0
    dirty_count = 0

    def progress(i, total, filepath, result):
        nonlocal clean_count, dirty_count
        if result.is_clean:
            clean_count += 1
            if verbose:
                click.echo(log.cli_success(f'  [{i}/{total}] {filepath.name} -- CLEAN'))
        else:
            dirty_count += 1
            if result.error:
                click.echo(log.cli_error(f'  [{i}/{total}] {filepath.name} -- '
                                         f'ERROR: {result.error}'))
            else:
                click.echo(log.cli_warning(f'  [{i}/{total}] {filepath.name} -- '
                                           f'{len(result.findings)} tag(s) remain'))
            if verbose:
                for f in result.findings:
                    click.echo(log.cli_tag(f))

    verify_batch(input_path, policy=check_policy, format_filter=fmt,
                 progress_callback=progress)

    click.echo(f'\nVerification: {clean_count} clean, {dirty_count} with remaining metadata')
    if dirty_count > 0:
        click.echo(log.cli_warning('WARNING: Some files still contain targeted metadata!'))
        sys.exit(1)
    click.echo(log.cli_success('All files verified clean.'))


@main.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
def info(path):
    """Show format, EXIF byte order and tags for one image."""
    filepath = Path(path)
    result = scan_file(filepath)

    click.echo(f'File: {filepath.name}')
    click.echo(f'Format: {result.format}')
    click.echo(f'Size: {result.file_size} bytes')
    if result.error:
        click.echo(log.cli_error(f'Error: {result.error}'))
        sys.exit(1)

    click.echo(f'EXIF blocks: {result.exif_blocks}')
    click.echo(f'Byte order: {result.byte_order or "-"}')
    click.echo(log.cli_separator())
    for f in result.findings:
        click.echo(log.cli_tag(f))

    remaining = remaining_findings(result.findings)
    if remaining:
        click.echo(f'\nMetadata status: {len(remaining)} categorized tag(s) present')
    else:
        click.echo('\nMetadata status: CLEAN')


if __name__ == '__main__':
    main()
