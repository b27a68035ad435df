from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from ..tracks import Track


@dataclass(frozen=True, slots=True)
class CheckLine:
    label: str
    status: str
    detail: Optional[str] = None

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status} ({self.detail})"
        return f"{self.label}: {self.status}"


def ok(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "OK", detail).render()


def warning(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "WARNING", detail).render()


def error(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "ERROR", detail).render()


def skipped(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "SKIPPED", detail).render()


def disabled(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "DISABLED", detail).render()


def track_line(track: Track) -> str:
    """One human-readable line: "Artist - Album - 03 Title (2:52)"."""
    parts = [track.artist or "?", track.album or "?"]
    number = f"{track.track_number:02d} " if track.track_number else ""
    parts.append(f"{number}{track.title or '?'}")
    length = Track.length_display(track.length_ms // 1000)
    return f"{' - '.join(parts)} ({length})"


def track_json(track: Track) -> str:
    return json.dumps(track.metadata.to_record(), sort_keys=True)
