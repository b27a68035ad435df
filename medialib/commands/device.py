from __future__ import annotations

from ..collection import DeviceCollection
from .output import track_json, track_line


def run(collection: DeviceCollection, *, json_output: bool = False) -> int:
    try:
        count = collection.load()
        if not count:
            if not json_output:
                print("No tracks on device.")
            return 0
        for track in collection.sorted_tracks():
            print(track_json(track) if json_output else track_line(track))
        if not json_output:
            print(f"{count} device track(s)")
        return count
    finally:
        collection.close()
