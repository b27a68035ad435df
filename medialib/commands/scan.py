from __future__ import annotations

from ..collection import DirectoryCollection, LoadReport
from .output import track_json, track_line


def run(collection: DirectoryCollection, *, json_output: bool = False, list_tracks: bool = False) -> LoadReport:
    report = collection.load()
    tracks = sorted(collection.tracks(), key=lambda track: track.path)
    if json_output:
        for track in tracks:
            print(track_json(track))
        return report
    if list_tracks:
        for track in tracks:
            print(track_line(track))
    print(report.summary())
    if report.invalid or report.stale:
        print(f"Re-read {report.stale} changed and {report.invalid} unrecognised cache record(s).")
    if report.pruned:
        print(f"Pruned {report.pruned} cache record(s) for files that are gone.")
    return report
