from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..byte_handle import FileByteHandle
from ..cache import TrackCache
from ..config import Settings
from ..filetypes import ID3_FOOTER_SIZE, ID3_HEADER_SIZE, find_mpeg_frame, is_mpeg_frame, read_id3v2_header
from ..scanner import LibraryScanner
from .output import disabled, error, ok as ok_line, skipped, warning

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DoctorReport:
    ok: bool
    checks: list[str]


@dataclass(frozen=True, slots=True)
class ID3SizeFinding:
    """An ID3v2 tag whose declared size does not end where the audio starts."""

    path: Path
    declared_end: int
    audio_offset: Optional[int]
    declared_size: int
    has_footer: bool

    @property
    def expected_size(self) -> Optional[int]:
        """The tag size the header should carry, or None when no audio frame was found."""
        if self.audio_offset is None:
            return None
        size = self.audio_offset - ID3_HEADER_SIZE
        if self.has_footer:
            size -= ID3_FOOTER_SIZE
        return max(size, 0)

    def describe(self) -> str:
        if self.audio_offset is None:
            return f"{self.path}: tag ends at {self.declared_end}, no MPEG frame found"
        return (
            f"{self.path}: tag size {self.declared_size} ends at {self.declared_end}, "
            f"audio starts at {self.audio_offset} (size should be {self.expected_size})"
        )


def check_id3_header(path: Path) -> Optional[ID3SizeFinding]:
    """
    Compare the ID3v2 tag size stored in ``path`` against where the audio starts.

    Files without an ID3v2 header, or whose tag is followed directly by an
    MPEG frame or a FLAC stream, are fine and yield None. The file is only
    ever opened read-only.
    """
    with FileByteHandle(path) as handle:
        header = read_id3v2_header(handle)
        if header is None:
            return None
        end = header.total_size
        if is_mpeg_frame(handle, end):
            return None
        if end + 4 <= handle.length and handle.read(end, 4) == b"fLaC":
            return None
        return ID3SizeFinding(
            path=path,
            declared_end=end,
            audio_offset=find_mpeg_frame(handle, ID3_HEADER_SIZE),
            declared_size=header.tag_size,
            has_footer=header.has_footer,
        )


def find_broken_id3_tags(paths: Iterable[Path]) -> list[ID3SizeFinding]:
    findings: list[ID3SizeFinding] = []
    for path in paths:
        try:
            finding = check_id3_header(path)
        except OSError as exc:
            logger.warning("Could not audit %s: %s", path, exc)
            continue
        if finding is not None:
            findings.append(finding)
    return findings


def run(settings: Settings, *, audit_id3: bool = True, config_path: Optional[Path] = None) -> DoctorReport:
    checks: list[str] = []
    ok = True

    if config_path is not None:
        checks.append(ok_line("Config", str(config_path)))

    if settings.cache.enabled:
        try:
            cache = TrackCache(settings.cache.path)
        except Exception as exc:
            ok = False
            checks.append(error("Cache", f"{settings.cache.path}: {exc}"))
        else:
            try:
                checks.append(ok_line("Cache", f"{settings.cache.path} ({cache.count()} record(s))"))
            finally:
                cache.close()
    else:
        checks.append(disabled("Cache", "every scan reads every file"))

    roots = list(settings.library.roots)
    missing = [str(root) for root in roots if not root.exists()]
    if missing:
        ok = False
        checks.append(error("Library roots", f"missing: {', '.join(missing)}"))
    else:
        checks.append(ok_line("Library roots", f"{len(roots)} root(s)"))

    catalog = settings.device.catalog
    if catalog is None:
        checks.append(disabled("Device catalog", "set device.catalog"))
    elif not catalog.exists():
        ok = False
        checks.append(error("Device catalog", f"missing: {catalog}"))
    else:
        checks.append(ok_line("Device catalog", str(catalog)))

    if not audit_id3:
        checks.append(skipped("ID3v2 headers", "drop --skip-id3"))
        return DoctorReport(ok=ok, checks=checks)

    scanner = LibraryScanner(settings.library)
    findings = find_broken_id3_tags(scanner.iter_files())
    if findings:
        checks.append(warning("ID3v2 headers", f"{len(findings)} file(s) with a wrong tag size"))
        checks.extend(f"  {finding.describe()}" for finding in findings)
    else:
        checks.append(ok_line("ID3v2 headers"))
    return DoctorReport(ok=ok, checks=checks)
