#!/usr/bin/env python3
"""Inspect and maintain a pydevcache cache directory.

Usage
-----
::

    python scripts/cache_admin.py show [--json]
    python scripts/cache_admin.py clear [--device NAME] [--type DATA_TYPE]
    python scripts/cache_admin.py cleanup

Options::

    --dir PATH      Cache directory (default: $PYDEVCACHE_DIR or ~/.cache/pydevcache)
    --verbose, -v   Enable debug logging
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydevcache import CacheConfig, DeviceCacheError, FileCache, Stats  # noqa: E402


def _format_stats(stats: Stats, path: str) -> str:
    lines = [
        f"Cache directory: {path}",
        f"Entries:         {stats.total_entries} ({stats.expired_entries} expired)",
        f"Devices:         {stats.device_count}",
        f"Size:            {stats.total_size_bytes} bytes",
    ]
    if stats.oldest_entry is not None and stats.newest_entry is not None:
        lines.append(f"Oldest entry:    {stats.oldest_entry.isoformat()}")
        lines.append(f"Newest entry:    {stats.newest_entry.isoformat()}")
    if stats.type_counts:
        lines.append("By data type:")
        for data_type, count in sorted(stats.type_counts.items()):
            lines.append(f"  {data_type:<24} {count}")
    return "\n".join(lines)


def _show(cache: FileCache, args: argparse.Namespace) -> int:
    stats = cache.stats()
    if args.json_mode:
        print(json.dumps(stats.model_dump(mode="json"), indent=2))
    else:
        print(_format_stats(stats, cache.path))
    return 0


def _clear(cache: FileCache, args: argparse.Namespace) -> int:
    if args.device and args.data_type:
        cache.invalidate(args.device, args.data_type)
        print(f"Cleared {args.data_type} for {args.device}")
    elif args.device:
        cache.invalidate_device(args.device)
        print(f"Cleared all cached data for {args.device}")
    elif args.data_type:
        print("--type requires --device", file=sys.stderr)
        return 2
    else:
        cache.invalidate_all()
        print("Cleared entire cache")
    return 0


def _cleanup(cache: FileCache, _args: argparse.Namespace) -> int:
    removed = cache.cleanup()
    print(f"Removed {removed} expired entries")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect and maintain the device data cache.")
    parser.add_argument("--dir", help="Cache directory (default: from environment)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print cache statistics")
    show.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    show.set_defaults(handler=_show)

    clear = sub.add_parser("clear", help="Delete cached entries")
    clear.add_argument("--device", help="Only clear entries for this device")
    clear.add_argument("--type", dest="data_type", help="Only clear this data type (requires --device)")
    clear.set_defaults(handler=_clear)

    cleanup = sub.add_parser("cleanup", help="Delete expired entries now")
    cleanup.set_defaults(handler=_cleanup)

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = CacheConfig.from_env(cache_dir=args.dir) if args.dir else CacheConfig.from_env()
        cache = FileCache(config.cache_dir, orphan_temp_max_age=config.orphan_temp_max_age)
        sys.exit(args.handler(cache, args))
    except DeviceCacheError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
