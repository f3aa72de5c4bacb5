#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast

from dotenv import load_dotenv

from jsoncache.app import JSONCache
from jsoncache.config import (
    ConfigurationError,
    ModelConfig,
    configure_logging,
    get_cache_config,
    get_model_config,
)
from jsoncache.domain.casing import Casing
from jsoncache.domain.dates import DateFormat
from jsoncache.domain.result import Failure

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from jsoncache.config import CacheConfig

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Merge JSON payloads into a local object cache")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--model", type=str, help="Model name (defaults to JSONCACHE_MODEL)")
    parser.add_argument(
        "--model-dir",
        type=Path,
        help="Directory holding <model>.json (defaults to JSONCACHE_MODEL_DIR or cwd)",
    )
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data dir)",
    )
    parser.add_argument(
        "--casing",
        choices=[casing.value for casing in Casing],
        help="Key casing of external JSON (defaults to JSONCACHE_CASING)",
    )
    parser.add_argument(
        "--date-format",
        choices=[date_format.value for date_format in DateFormat],
        help="Date representation in external JSON (defaults to JSONCACHE_DATE_FORMAT)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    load = subparsers.add_parser("load", help="Stage and merge a JSON payload file")
    load.add_argument("payload", type=Path, help="JSON file to merge")
    load.add_argument(
        "--entity",
        type=str,
        help="Entity name for a payload holding a list (or a single object) of that entity",
    )

    show = subparsers.add_parser("show", help="Print a stored object as JSON")
    show.add_argument("entity", type=str, help="Entity name")
    show.add_argument("identifier", type=str, help="Identifier value")

    return parser.parse_args(list(argv))


def _resolve_cache_config(args: argparse.Namespace) -> CacheConfig:
    config = get_cache_config()
    if args.casing is not None:
        config = dataclasses.replace(config, casing=Casing(args.casing))
    if args.date_format is not None:
        config = dataclasses.replace(config, date_format=DateFormat(args.date_format))
    return config


def _resolve_model_config(args: argparse.Namespace) -> ModelConfig:
    if args.model is None:
        config = get_model_config()
        if args.model_dir is not None:
            config = dataclasses.replace(config, model_dir=args.model_dir)
        return config
    return ModelConfig(model_name=args.model, model_dir=args.model_dir or Path.cwd())


def _read_payload(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read payload {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def _as_dictionaries(value: object, label: str) -> list[dict[str, object]]:
    if isinstance(value, dict):
        items: list[object] = [value]
    elif isinstance(value, list):
        items = cast("list[object]", value)
    else:
        raise ValueError(f"{label} must be an object or a list of objects")
    if not all(isinstance(item, dict) for item in items):
        raise ValueError(f"{label} must only contain objects")
    return cast("list[dict[str, object]]", items)


def _stage_payload(cache: JSONCache, payload: object, entity_name: str | None) -> None:
    if entity_name is not None:
        cache.stage_changes(_as_dictionaries(payload, "Payload"), entity_name)
        return

    if not isinstance(payload, dict):
        raise ValueError("Payload must map entity names to lists of objects (or pass --entity)")
    for name, dictionaries in cast("dict[str, object]", payload).items():
        cache.stage_changes(_as_dictionaries(dictionaries, f"Payload entry {name!r}"), name)


def _run(cache: JSONCache, args: argparse.Namespace) -> int:
    if args.command == "load":
        _stage_payload(cache, _read_payload(args.payload), args.entity)
        result = cache.apply_changes_sync()
        if isinstance(result, Failure):
            log.error("Merge failed: %s", result.error)
            return 1
        counters = result.value.counters
        log.info(
            "Merged payload: inserted=%d, updated=%d, relationships=%d, unresolved=%d",
            counters.inserted,
            counters.updated,
            counters.relationships_set,
            counters.unresolved,
        )
        return 0

    fetched = cache.fetch_object(args.entity, args.identifier)
    if isinstance(fetched, Failure):
        log.error("Lookup failed: %s", fetched.error)
        return 1
    if fetched.value is None:
        log.error("No %s with identifier %s", args.entity, args.identifier)
        return 1
    print(cache.serializer.to_json_string(fetched.value))
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        configure_logging(level=logging.DEBUG if parsed_args.verbose else None)
        cache_config = _resolve_cache_config(parsed_args)
        model_config = _resolve_model_config(parsed_args)
    except ConfigurationError:
        log.exception("CLI configuration error")
        sys.exit(2)

    cache = JSONCache(cache_config)
    bootstrapped = cache.bootstrap(
        model_config.model_name,
        model_dir=model_config.model_dir,
        database_uri=parsed_args.database_uri,
    )
    if isinstance(bootstrapped, Failure):
        log.error("Cannot start cache: %s", bootstrapped.error)
        sys.exit(1)

    try:
        exit_code = _run(cache, parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        exit_code = 2
    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        exit_code = 1
    finally:
        cache.shutdown()
    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
