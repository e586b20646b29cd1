"""Data models for exifredact policies, scan results and redaction results."""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple

from exifredact.exif.tags import (
    CATEGORY_CAMERA,
    CATEGORY_COPYRIGHT,
    CATEGORY_DATETIME,
    CATEGORY_GPS,
    CATEGORY_TAGS,
    CATEGORY_TECHNICAL,
    CATEGORY_USER_INFO,
)

# Policy switch name for each category
POLICY_FIELDS = {
    CATEGORY_CAMERA: 'remove_camera_info',
    CATEGORY_GPS: 'remove_gps_info',
    CATEGORY_COPYRIGHT: 'remove_copyright',
    CATEGORY_DATETIME: 'remove_datetime',
    CATEGORY_USER_INFO: 'remove_user_info',
    CATEGORY_TECHNICAL: 'remove_technical_detail',
}


@dataclass(frozen=True)
class RedactionPolicy:
    """Which EXIF categories to remove.  Immutable for one redaction run."""
    remove_camera_info: bool = False
    remove_gps_info: bool = False
    remove_copyright: bool = False
    remove_datetime: bool = False
    remove_user_info: bool = False
    remove_technical_detail: bool = False

    @classmethod
    def default(cls) -> 'RedactionPolicy':
        """Empty policy: nothing is removed."""
        return cls()

    @classmethod
    def all(cls) -> 'RedactionPolicy':
        return cls(**{f.name: True for f in fields(cls)})

    @classmethod
    def from_categories(cls, categories: Iterable[str]) -> 'RedactionPolicy':
        """Build a policy enabling the named categories ('gps', 'datetime', ...)."""
        kwargs = {}
        for name in categories:
            if name not in POLICY_FIELDS:
                raise ValueError(f'Unknown EXIF category: {name!r}')
            kwargs[POLICY_FIELDS[name]] = True
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path) -> 'RedactionPolicy':
        """Load a policy from a JSON object of booleans.

        Keys may be switch names or category names::

            {"remove_gps_info": true, "datetime": true}

        Omitted keys default to False.
        """
        with open(str(path), 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError('Policy file must contain a JSON object')

        switch_names = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = POLICY_FIELDS.get(key, key)
            if name not in switch_names:
                raise ValueError(f'Unknown policy key: {key!r}')
            if not isinstance(value, bool):
                raise ValueError(f'Policy key {key!r} must be true or false')
            kwargs[name] = value
        return cls(**kwargs)

    def merge(self, other: 'RedactionPolicy') -> 'RedactionPolicy':
        """Return a policy with every switch enabled in either policy."""
        return RedactionPolicy(**{
            f.name: getattr(self, f.name) or getattr(other, f.name)
            for f in fields(self)
        })

    @property
    def enabled_categories(self) -> Tuple[str, ...]:
        return tuple(cat for cat, attr in POLICY_FIELDS.items()
                     if getattr(self, attr))

    @property
    def is_empty(self) -> bool:
        return not self.enabled_categories

    def targeted_tags(self) -> FrozenSet[int]:
        """All tag IDs whose value field this policy zeroes."""
        tags = set()
        for cat in self.enabled_categories:
            tags |= CATEGORY_TAGS[cat]
        return frozenset(tags)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class TagFinding:
    """A single IFD entry found inside an EXIF block."""
    tag_id: int
    tag_name: str
    ifd: str  # "IFD0" | "ExifIFD"
    dtype: int
    count: int
    value: int  # raw 4-byte value/offset field
    categories: Tuple[str, ...] = ()
    out_of_line: bool = False
    source: str = ''  # "APP1" | "eXIf"
    entry_offset: int = 0  # within the EXIF payload, prefix included

    @property
    def is_zeroed(self) -> bool:
        return self.value == 0


@dataclass
class ScanResult:
    """Result of scanning a single image for EXIF tags."""
    filepath: Path
    format: str  # "jpeg" | "png" | "unknown"
    findings: List[TagFinding] = field(default_factory=list)
    byte_order: Optional[str] = None  # "II" | "MM"
    exif_blocks: int = 0
    is_clean: bool = True
    scan_time_ms: float = 0.0
    file_size: int = 0
    error: Optional[str] = None


@dataclass
class RedactionResult:
    """Result of redacting a single image."""
    source_path: Path
    output_path: Path
    mode: str  # "copy" | "inplace"
    format: str = 'unknown'
    tags_cleared: int = 0
    cleared: List[TagFinding] = field(default_factory=list)
    verified: bool = False
    redaction_time_ms: float = 0.0
    sha256_after: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Result of a batch redaction run."""
    results: List[RedactionResult] = field(default_factory=list)
    total_files: int = 0
    files_redacted: int = 0
    files_already_clean: int = 0
    files_errored: int = 0
    total_time_seconds: float = 0.0
    certificate_path: Optional[Path] = None
