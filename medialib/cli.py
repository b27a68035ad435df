from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from .app import MedialibApp
from .cache import TrackCache
from .commands import device as cmd_device
from .commands import doctor as cmd_doctor
from .commands import scan as cmd_scan
from .config import Settings, find_config
from .watcher import CollectionWatcher

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ShortPathFormatter(logging.Formatter):
    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        self.roots = [str(root) for root in roots if root]

    def _shorten(self, message: str) -> str:
        for root in self.roots:
            if not message:
                break
            message = message.replace(f"{root}/", "")
            message = message.replace(root, "")
        return message

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return self._shorten(message)


class ColorFormatter(ShortPathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Media library track metadata")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Drop every cached track record before running",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    scan_parser = subparsers.add_parser("scan", help="Load the library through the track cache")
    scan_parser.add_argument("--json", action="store_true", help="Emit one JSON record per track")
    scan_parser.add_argument("--list", action="store_true", help="Print every track, not just the summary")
    device_parser = subparsers.add_parser("device", help="List the tracks of a device catalog")
    device_parser.add_argument("--catalog", type=Path, default=None, help="Device catalog (YAML)")
    device_parser.add_argument("--json", action="store_true", help="Emit one JSON record per track")
    doctor_parser = subparsers.add_parser("doctor", help="Run config/cache checks and audit ID3v2 headers")
    doctor_parser.add_argument(
        "--skip-id3",
        action="store_true",
        help="Do not read every file to audit ID3v2 tag sizes",
    )
    subparsers.add_parser("watch", help="Keep the track cache current while files change")
    return parser


def configure_logging(level_name: str, display_roots: list[Path]) -> tuple[WarningBufferHandler, Path]:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, display_roots))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, display_roots))
    root_logger.addHandler(warn_buffer)

    warn_log_path = Path.cwd() / "medialib-warnings.log"
    file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ShortPathFormatter(LOG_FORMAT, display_roots))
    root_logger.addHandler(file_handler)

    logging.getLogger("watchdog").setLevel(logging.WARNING)
    return warn_buffer, warn_log_path


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    config_path = find_config(args.config)
    settings = Settings.load(config_path)
    warn_buffer, warn_log_path = configure_logging(args.log_level, list(settings.library.roots))

    if args.clear_cache:
        cache = TrackCache(settings.cache.path)
        cache.clear()
        cache.close()
        print("Cleared cached track records.")

    app: MedialibApp | None = None
    if args.command in {"scan", "device", "watch"}:
        app = MedialibApp.create(settings)

    try:
        match args.command:
            case "scan":
                cmd_scan.run(
                    app.get_collection(),
                    json_output=getattr(args, "json", False),
                    list_tracks=getattr(args, "list", False),
                )
            case "device":
                try:
                    collection = app.open_device(getattr(args, "catalog", None))
                except FileNotFoundError as exc:
                    raise SystemExit(str(exc)) from exc
                cmd_device.run(collection, json_output=getattr(args, "json", False))
            case "doctor":
                report = cmd_doctor.run(
                    settings,
                    audit_id3=not getattr(args, "skip_id3", False),
                    config_path=config_path,
                )
                for line in report.checks:
                    print(line)
                if not report.ok:
                    raise SystemExit(1)
            case "watch":
                collection = app.get_collection()
                collection.load()
                try:
                    asyncio.run(CollectionWatcher(collection).run())
                except KeyboardInterrupt:
                    pass
            case _:
                parser.error("Unknown command")
    finally:
        if app:
            app.close()
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warn_log_path}")
