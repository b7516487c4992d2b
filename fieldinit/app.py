import argparse
import json
import secrets
from pathlib import Path
from typing import Any, List, Optional, Tuple

from . import __version__
from .database import init_database
from .env import load_env, get_settings, Settings
from .flatten import flatten_fields, select_eligible
from .hooks import Hooks, ManualTriggerRequest, MANAGE_CAPABILITY, create_token
from .logger import get_logger
from .plugin import Plugin
from .schema import validate_field_group

logger = get_logger()


def _settings(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if getattr(args, "db", None):
        settings.db_path = Path(args.db)
    return settings


def _open(settings: Settings) -> Tuple[Plugin, Hooks]:
    plugin = Plugin(settings)
    hooks = plugin.init()
    if hooks is None:
        for notice in plugin.notices:
            print(notice)
        raise SystemExit(1)
    return plugin, hooks


def _load_json(path_str: str) -> Any:
    input_path = Path(path_str)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _check(group: Any) -> None:
    errors = validate_field_group(group)
    if errors:
        print(f"Invalid field group {group.get('key') if isinstance(group, dict) else ''}:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.db_path)
    print(f"Database ready: {settings.db_path}")


def cmd_validate(args: argparse.Namespace) -> None:
    data = _load_json(args.input)
    groups = data if isinstance(data, list) else [data]
    for group in groups:
        _check(group)
    print("Valid")


def cmd_save_group(args: argparse.Namespace) -> None:
    data = _load_json(args.input)
    _check(data)
    plugin, hooks = _open(_settings(args))
    try:
        group = plugin.store.save_field_group(data)
        hooks.on_group_saved(group)
        print(f"Saved: {group.key} (id {group.id})")
        print(f"Records updated: {logger.get_metrics()['records_updated']}")
    finally:
        plugin.close()


def cmd_sync(args: argparse.Namespace) -> None:
    data = _load_json(args.input)
    groups = data if isinstance(data, list) else [data]
    for group in groups:
        _check(group)
    plugin, hooks = _open(_settings(args))
    try:
        for group in groups:
            plugin.store.save_field_group(group)
        reprocessed = hooks.on_schema_sync()
        print(f"Synced {len(groups)} field groups, reprocessed {reprocessed}")
        print(f"Records updated: {logger.get_metrics()['records_updated']}")
    finally:
        plugin.close()


def cmd_process(args: argparse.Namespace) -> None:
    settings = _settings(args)
    if not settings.secret:
        # Local run: no remote caller to share a secret with
        settings.secret = secrets.token_hex(16)
    plugin, hooks = _open(settings)
    try:
        request = ManualTriggerRequest(
            group_key=args.group,
            token=create_token(settings.secret),
            capabilities=frozenset({MANAGE_CAPABILITY}),
        )
        outcome = hooks.on_manual_trigger(request)
    finally:
        plugin.close()
    print(json.dumps(outcome))
    if not outcome["success"]:
        raise SystemExit(1)


def cmd_sweep(args: argparse.Namespace) -> None:
    plugin, hooks = _open(_settings(args))
    try:
        hooks.on_startup()
    finally:
        plugin.close()
    logger.log_metrics_summary()


def cmd_list(args: argparse.Namespace) -> None:
    plugin, _ = _open(_settings(args))
    try:
        groups = plugin.store.get_field_groups()
        if not groups:
            print("No field groups in store.")
            return
        print(f"Found {len(groups)} field groups:\n")
        for summary in groups:
            group = plugin.store.get_field_group(summary.key)
            fields = flatten_fields(group.fields)
            eligible = select_eligible(fields)
            print(f"Key: {group.key}")
            print(f"  Title: {group.title}")
            print(f"  Fields: {len(fields)} ({len(eligible)} with defaults to initialize)")
            for f in eligible:
                print(f"    {f.name} [{f.key}] = {json.dumps(f.default_value)}")
            print()
    finally:
        plugin.close()


def main(argv: Optional[List[str]] = None):
    # Load .env if present (FIELDINIT_DB, FIELDINIT_SECRET, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="fieldinit", description="Initialize field default values on existing records")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="SQLite database path (default: FIELDINIT_DB or data/fieldinit.db)")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init-db", help="Create field group and record tables")
    ini.set_defaults(func=cmd_init_db)

    val = subparsers.add_parser("validate", help="Validate a field group JSON definition")
    val.add_argument("--input", required=True, help="Path to field group JSON (object or list)")
    val.set_defaults(func=cmd_validate)

    sav = subparsers.add_parser("save-group", help="Save a field group and initialize its default values")
    sav.add_argument("--input", required=True, help="Path to field group JSON")
    sav.set_defaults(func=cmd_save_group)

    syn = subparsers.add_parser("sync", help="Import field groups from JSON and reprocess recently synced groups")
    syn.add_argument("--input", required=True, help="Path to JSON list of field groups")
    syn.set_defaults(func=cmd_sync)

    prc = subparsers.add_parser("process", help="Manually initialize default values for one field group")
    prc.add_argument("--group", required=True, help="Field group key or id")
    prc.set_defaults(func=cmd_process)

    swp = subparsers.add_parser("sweep", help="Initialize default values for every field group")
    swp.set_defaults(func=cmd_sweep)

    lst = subparsers.add_parser("list", help="List stored field groups")
    lst.set_defaults(func=cmd_list)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    settings = get_settings()
    logger.configure(
        level=settings.log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_to_file,
    )

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
