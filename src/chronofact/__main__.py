"""Entry point: python -m chronofact <command>

Every command works on a JSONL patch log (default: config `patch_log`).

- set ENTITY k=v ... --at DATE   Append a patch to the log
- query [k=v[,v2] ...]           Entities matching the filter (--fast for the index path)
- snapshot ENTITY                Resolved attributes of one entity
- timeline ENTITY                State after each effective date
- export DIR                     Write one markdown file per entity
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from chronofact.config import ChronofactConfig, load_config
from chronofact.dates import parse_date
from chronofact.errors import ChronofactError, ValidationError
from chronofact.export import dump_patches, export_entities, load_patches
from chronofact.store import TemporalStore


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _parse_pairs(pairs: list[str], *, allow_sets: bool) -> dict[str, object]:
    parsed: dict[str, object] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ValidationError(f"Expected field=value, got {pair!r}")
        if allow_sets and "," in value:
            parsed[name] = [v for v in value.split(",") if v]
        else:
            parsed[name] = value
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chronofact")
    parser.add_argument("--log", type=Path, help="JSONL patch log (default from config)")
    parser.add_argument("--config", type=Path, help="Path to chronofact.toml")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("set", help="Append a patch")
    p.add_argument("entity")
    p.add_argument("pairs", nargs="+", metavar="field=value")
    p.add_argument("--at", required=True, help="Effective date (ISO-8601)")

    p = sub.add_parser("query", help="Entities matching a filter")
    p.add_argument("pairs", nargs="*", metavar="field=value[,value]")
    p.add_argument("--at", help="Query date (default: today)")
    p.add_argument("--fast", action="store_true", help="Use the indexed path")

    p = sub.add_parser("snapshot", help="Resolved attributes of an entity")
    p.add_argument("entity")
    p.add_argument("--at", help="Query date (default: today)")

    p = sub.add_parser("timeline", help="State after each effective date")
    p.add_argument("entity")

    p = sub.add_parser("export", help="Write entity markdown files")
    p.add_argument("directory", type=Path)
    p.add_argument("--at", help="Resolution date (default: today)")
    return parser


def _open_store(config: ChronofactConfig, log_path: Path) -> TemporalStore:
    store = TemporalStore(config.store)
    if log_path.exists():
        load_patches(store, log_path)
    return store


def run(argv: list[str], config: ChronofactConfig | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if config is None:
        config = load_config(args.config)
        _setup_logging(config.log_level)
    log_path = args.log or config.patch_log
    store = _open_store(config, log_path)

    if args.command == "set":
        store.set(args.entity, _parse_pairs(args.pairs, allow_sets=False), args.at)
        dump_patches(store, log_path)
    elif args.command == "query":
        filter = _parse_pairs(args.pairs, allow_sets=True)
        ids = store.query_fast(filter, args.at) if args.fast else store.query(filter, args.at)
        for entity_id in ids:
            print(entity_id)
    elif args.command == "snapshot":
        print(json.dumps(store.snapshot(args.entity, args.at), ensure_ascii=False, sort_keys=True))
    elif args.command == "timeline":
        for point in store.timeline(args.entity):
            state = json.dumps(dict(point.state), ensure_ascii=False, sort_keys=True)
            print(f"{point.at.isoformat()} {state}")
    elif args.command == "export":
        when = parse_date(args.at) if args.at else date.today()
        for path in export_entities(store, args.directory, when):
            print(path)
    return 0


def main() -> None:
    try:
        code = run(sys.argv[1:])
    except ChronofactError as e:
        print(f"chronofact: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
