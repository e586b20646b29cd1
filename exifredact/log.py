"""Output helpers -- ANSI styling for the CLI, plain lines for ``--log`` files.

Color is decided once from whether stdout is a terminal and can be forced
either way with set_color_enabled().  Library modules never print; they log
through ``logging.getLogger(__name__)`` under the ``exifredact`` tree, which
configure_logging() routes to stderr.
"""

import logging
import sys
from datetime import datetime

_RESET = '\033[0m'

_STYLES = {
    'header': '\033[1;36m',
    'success': '\033[32m',
    'warning': '\033[33m',
    'error': '\033[1;31m',
    'dim': '\033[2m',
}


def _stdout_is_terminal() -> bool:
    isatty = getattr(sys.stdout, 'isatty', None)
    return bool(isatty and isatty())


_color = _stdout_is_terminal()


def set_color_enabled(enabled: bool):
    """Force ANSI styling on or off (tests, ``NO_COLOR`` wrappers)."""
    global _color
    _color = enabled


def _paint(style: str, text: str) -> str:
    if not _color:
        return text
    return f'{_STYLES[style]}{text}{_RESET}'


def cli_header(text: str) -> str:
    return _paint('header', text)


def cli_success(text: str) -> str:
    """Clean files, passed verification."""
    return _paint('success', text)


def cli_warning(text: str) -> str:
    """Targeted metadata still present, empty policy."""
    return _paint('warning', text)


def cli_error(text: str) -> str:
    return _paint('error', text)


def cli_tag(finding) -> str:
    """One indented line for a TagFinding.

    Entries of a category that still hold a value are highlighted; zeroed
    and uncategorized entries are dimmed.
    """
    cats = ','.join(finding.categories) or '-'
    state = 'zeroed' if finding.is_zeroed else f'0x{finding.value:08X}'
    line = (f'    {finding.ifd:<7} 0x{finding.tag_id:04X} '
            f'{finding.tag_name:<24} [{cats}] {state}')
    if finding.categories and not finding.is_zeroed:
        return _paint('warning', line)
    return _paint('dim', line)


def cli_separator(width: int = 60) -> str:
    return _paint('dim', '─' * width)


# Log file lines: never colored, always timestamped

def _log_line(level: str, msg: str) -> str:
    stamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    return f'[{stamp}] [{level}]'.ljust(len(stamp) + 11) + msg


def log_info(msg: str) -> str:
    return _log_line('INFO', msg)


def log_warn(msg: str) -> str:
    return _log_line('WARN', msg)


def log_error(msg: str) -> str:
    return _log_line('ERROR', msg)


LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'


def configure_logging(debug: bool = False):
    """Send ``exifredact.*`` records to stderr.

    The library only emits DEBUG records (pass-through payloads,
    out-of-range directories), so without ``debug`` the handler stays quiet.
    Calling this again only adjusts the level.
    """
    logger = logging.getLogger('exifredact')
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if any(getattr(h, '_exifredact', False) for h in logger.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._exifredact = True
    logger.addHandler(handler)
