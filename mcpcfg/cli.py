"""
Command-line interface for mcpcfg.

Notes
-----
The CLI is intentionally thin. It parses arguments, opens the engine and
delegates to it. Every engine failure is printed as ``ERROR: ...`` and mapped
to exit code 2; post-write warnings are printed as ``WARNING: ...`` and do not
change the exit code.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from config_engine.bootstrap import engine_paths_as_text, open_sync_engine
from config_engine.document import format_json
from config_engine.errors import ConfigEngineError
from config_engine.paths import resolve_engine_paths
from config_engine.profile_store.api import Profile
from config_engine.sync_engine import SyncEngine

EXIT_OK = 0
EXIT_ERROR = 2


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help="Override the mcpcfg data root (primarily for testing). If omitted, defaults are used.",
    )
    common.add_argument(
        "--default-config-path",
        type=Path,
        default=None,
        help="Override the default live configuration path used for the Default profile.",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="mcpcfg",
        description="MCP client configuration profile manager",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init_p = sub.add_parser(
        "init",
        parents=[common],
        help="Create the data root and the Default profile if the store is empty",
    )
    init_p.add_argument(
        "--print-paths",
        action="store_true",
        help="Print resolved paths after initialization",
    )

    profiles_p = sub.add_parser("profiles", help="Manage profiles")
    profiles_sub = profiles_p.add_subparsers(dest="profiles_command", required=True)

    profiles_sub.add_parser("list", parents=[common], help="List profiles, newest first")

    show_p = profiles_sub.add_parser(
        "show", parents=[common], help="Print a profile's latest configuration"
    )
    show_p.add_argument("profile_id", type=int)

    create_p = profiles_sub.add_parser(
        "create",
        parents=[common],
        help="Create a profile seeded from the configuration at --config-path",
    )
    create_p.add_argument("--name", required=True, help="Unique profile name")
    create_p.add_argument(
        "--config-path",
        type=Path,
        default=None,
        help="Live configuration file. Defaults to the current settings.",
    )
    create_p.add_argument(
        "--backup-path",
        type=Path,
        default=None,
        help="Backup directory. Defaults to the current settings.",
    )
    create_p.add_argument(
        "--client-path",
        type=Path,
        default=None,
        help="Companion client executable. Defaults to the current settings.",
    )

    remix_p = profiles_sub.add_parser(
        "remix", parents=[common], help="Clone a profile under a new name"
    )
    remix_p.add_argument("profile_id", type=int)
    remix_p.add_argument("--name", required=True, help="Name of the new profile")

    switch_p = profiles_sub.add_parser(
        "switch",
        parents=[common],
        help="Write a profile's configuration to its live file and make it active",
    )
    switch_p.add_argument("profile_id", type=int)

    delete_p = profiles_sub.add_parser(
        "delete", parents=[common], help="Delete a profile and its history"
    )
    delete_p.add_argument("profile_id", type=int)

    paths_p = profiles_sub.add_parser(
        "set-paths", parents=[common], help="Update a profile's paths"
    )
    paths_p.add_argument("profile_id", type=int)
    paths_p.add_argument("--config-path", type=Path, required=True)
    paths_p.add_argument("--backup-path", type=Path, required=True)
    paths_p.add_argument("--client-path", type=Path, default=None)

    history_p = profiles_sub.add_parser(
        "history", parents=[common], help="List a profile's configuration snapshots"
    )
    history_p.add_argument("profile_id", type=int)

    save_p = sub.add_parser(
        "save",
        parents=[common],
        help="Validate raw configuration JSON and write it (backup first)",
    )
    save_p.add_argument(
        "--input",
        type=Path,
        default=None,
        help="File holding the raw JSON. Reads stdin when omitted.",
    )
    save_p.add_argument(
        "--target",
        type=Path,
        default=None,
        help="File to write. Defaults to the active config path.",
    )
    save_p.add_argument(
        "--profile-id",
        type=int,
        default=None,
        help="Also record the text in this profile's history.",
    )

    load_p = sub.add_parser(
        "load", parents=[common], help="Read a configuration file and list its servers"
    )
    load_p.add_argument("path", type=Path)

    backup_p = sub.add_parser(
        "backup", parents=[common], help="Create a timestamped backup of a file"
    )
    backup_p.add_argument(
        "path",
        type=Path,
        nargs="?",
        default=None,
        help="File to back up. Defaults to the active config path.",
    )

    settings_p = sub.add_parser("settings", help="Show or edit the active paths")
    settings_sub = settings_p.add_subparsers(dest="settings_command", required=True)
    settings_sub.add_parser("show", parents=[common], help="Print the active paths")
    set_p = settings_sub.add_parser(
        "set", parents=[common], help="Update any subset of the active paths"
    )
    set_p.add_argument("--config-path", type=Path, default=None)
    set_p.add_argument("--backup-path", type=Path, default=None)
    client = set_p.add_mutually_exclusive_group(required=False)
    client.add_argument("--client-path", type=Path, default=None)
    client.add_argument(
        "--clear-client-path",
        action="store_true",
        help="Forget the companion client path.",
    )

    format_p = sub.add_parser(
        "format", help="Pretty-print a JSON file to stdout (indent 2)"
    )
    format_p.add_argument("path", type=Path)
    format_p.add_argument("-v", "--verbose", action="store_true", help=argparse.SUPPRESS)

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _open_engine(args: argparse.Namespace) -> SyncEngine:
    return open_sync_engine(
        data_root=args.data_root, config_path=args.default_config_path
    )


def _print_warnings(warnings: Sequence[str]) -> None:
    for warning in warnings:
        print(f"WARNING: {warning}")


def _render_profile(profile: Profile) -> str:
    client = str(profile.client_path) if profile.client_path is not None else "-"
    return (
        f"{profile.id}\t{profile.name}\tconfig={profile.config_path}\t"
        f"backup={profile.backup_path}\tclient={client}\tcreated={profile.created_at}"
    )


def _run_profiles(engine: SyncEngine, args: argparse.Namespace) -> int:
    command = args.profiles_command

    if command == "list":
        for profile in engine.list_profiles():
            print(_render_profile(profile))
        return EXIT_OK

    if command == "show":
        print(engine.get_latest_configuration(args.profile_id))
        return EXIT_OK

    if command == "create":
        current = engine.current_settings()
        profile_id = engine.create_profile(
            args.name,
            args.config_path or current.config_path,
            args.backup_path or current.backup_path,
            args.client_path or current.client_path,
        )
        print(f"Created profile {args.name!r} (id={profile_id})")
        return EXIT_OK

    if command == "remix":
        new_id = engine.remix_profile(args.profile_id, args.name)
        print(f"Created remix {args.name!r} (id={new_id}) from profile {args.profile_id}")
        return EXIT_OK

    if command == "switch":
        result = engine.switch_profile(args.profile_id)
        _print_warnings(result.warnings)
        if result.backup_path is not None:
            print(f"Backup: {result.backup_path}")
        if result.merged:
            print("Preserved existing servers (profile configuration was empty)")
        print(
            f"Switched to profile {result.profile.name!r}: "
            f"{len(result.document.servers)} server(s) written to {result.profile.config_path}"
        )
        return EXIT_OK

    if command == "delete":
        engine.delete_profile(args.profile_id)
        print(f"Deleted profile {args.profile_id}")
        return EXIT_OK

    if command == "set-paths":
        profile = engine.update_profile_paths(
            args.profile_id, args.config_path, args.backup_path, args.client_path
        )
        print(_render_profile(profile))
        return EXIT_OK

    if command == "history":
        for snapshot in engine.configuration_history(args.profile_id):
            print(f"{snapshot.id}\t{snapshot.created_at}\t{len(snapshot.content)} chars")
        return EXIT_OK

    raise AssertionError(f"unhandled profiles command: {command}")


def _run_settings(engine: SyncEngine, args: argparse.Namespace) -> int:
    if args.settings_command == "set":
        changes: dict[str, Path | None] = {}
        if args.config_path is not None:
            changes["config_path"] = args.config_path
        if args.backup_path is not None:
            changes["backup_path"] = args.backup_path
        if args.client_path is not None:
            changes["client_path"] = args.client_path
        if args.clear_client_path:
            changes["client_path"] = None
        engine.update_settings(**changes)

    current = engine.current_settings()
    print(f"configPath: {current.config_path}")
    print(f"backupPath: {current.backup_path}")
    print(f"clientPath: {current.client_path if current.client_path is not None else ''}")
    return EXIT_OK


def _run(args: argparse.Namespace) -> int:
    if args.command == "format":
        print(format_json(args.path.read_text(encoding="utf-8")))
        return EXIT_OK

    if args.command == "init":
        _open_engine(args)
        paths = resolve_engine_paths(data_root=args.data_root, config_path=args.default_config_path)
        if args.print_paths:
            print(engine_paths_as_text(paths))
        return EXIT_OK

    engine = _open_engine(args)

    if args.command == "profiles":
        return _run_profiles(engine, args)

    if args.command == "settings":
        return _run_settings(engine, args)

    if args.command == "save":
        text = args.input.read_text(encoding="utf-8") if args.input else sys.stdin.read()
        target = args.target or engine.current_settings().config_path
        result = engine.save_raw_configuration(text, target, args.profile_id)
        _print_warnings(result.warnings)
        if result.backup_path is not None:
            print(f"Backup: {result.backup_path}")
        print(f"Saved {len(result.document.servers)} server(s) to {result.path}")
        return EXIT_OK

    if args.command == "load":
        loaded = engine.load_configuration(args.path)
        _print_warnings(loaded.warnings)
        for name, spec in loaded.document.servers.items():
            print(f"{name}\t{spec.command or ''} {' '.join(spec.args)}".rstrip())
        count = len(loaded.document.servers)
        print(f"Loaded {count} server configuration{'' if count == 1 else 's'} from {loaded.path}")
        return EXIT_OK

    if args.command == "backup":
        target = args.path or engine.current_settings().config_path
        print(f"Backup: {engine.create_backup(target)}")
        return EXIT_OK

    raise AssertionError(f"unhandled command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return _run(args)
    except (ConfigEngineError, OSError) as exc:
        print(f"ERROR: {exc}")
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
