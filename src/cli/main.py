"""Lineage conductor CLI entry points.
This module exposes attach, snapshot, prune and listing commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Mapping, Sequence

from core.config import ConductorConfig
from core.errors import ConductorError
from lineage.conductor import LineageConductor


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="conductor",
        description="Provision and snapshot block-storage volume lineages",
    )
    parser.add_argument("--config", help="Optional YAML config file layered over environment")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_attach_command(subparsers)
    _add_snapshot_command(subparsers)
    _add_prune_command(subparsers)
    _add_volumes_command(subparsers)
    _add_snapshots_command(subparsers)
    subparsers.add_parser("regions", help="List regions visible to the credentials")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the conductor CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        with _build_conductor(args.config) as conductor:
            return _dispatch(conductor, args)
    except ConductorError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1


def _dispatch(conductor: LineageConductor, args: argparse.Namespace) -> int:
    if args.command == "attach":
        return _run_attach_command(conductor, args)
    if args.command == "snapshot":
        return _run_snapshot_command(conductor, args)
    if args.command == "prune":
        return _run_prune_command(conductor, args)
    if args.command == "volumes":
        return _run_volumes_command(conductor, args)
    if args.command == "snapshots":
        return _run_snapshots_command(conductor, args)
    if args.command == "regions":
        for region in conductor.regions():
            print(region)
        return 0
    print(f"error: unsupported command {args.command}", file=sys.stderr)
    return 2


def _build_conductor(config_path: str | None) -> LineageConductor:
    """Build SDK client with optional config file.

    Args:
        config_path: Optional YAML config path.

    Returns:
        Configured conductor.
    """
    config = ConductorConfig.from_file(config_path) if config_path else ConductorConfig.from_env()
    return LineageConductor(config)


def _run_attach_command(conductor: LineageConductor, args: argparse.Namespace) -> int:
    """Handle attach command."""
    volume_id = conductor.attach_from_lineage(
        instance_id=args.instance_id,
        lineage=args.lineage,
        size_gb=args.size,
        device=args.device,
        snapshot_id=args.snapshot_id,
        timeout_seconds=args.timeout,
        tags=tuple(args.tag),
    )
    print(volume_id)
    return 0


def _run_snapshot_command(conductor: LineageConductor, args: argparse.Namespace) -> int:
    """Handle snapshot command.

    Prints one ``region<TAB>snapshot_id`` line per created snapshot,
    then ``deleted<TAB>snapshot_id`` per pruned snapshot.
    """
    result = conductor.snapshot_lineage(
        lineage=args.lineage,
        volume_id=args.volume_id,
        history_to_keep=args.keep,
        timeout_seconds=args.timeout,
        tags=tuple(args.tag),
    )
    for region, snapshot_ids in result.created.items():
        for snapshot_id in snapshot_ids:
            print(f"{region}\t{snapshot_id}")
    for volume_id in result.skipped_volume_ids:
        print(f"skipped\t{volume_id}")
    _print_deleted(result.deleted)
    return 0


def _run_prune_command(conductor: LineageConductor, args: argparse.Namespace) -> int:
    """Handle prune command."""
    deleted = conductor.prune_history(args.lineage, args.keep)
    _print_deleted(deleted)
    return 0


def _run_volumes_command(conductor: LineageConductor, args: argparse.Namespace) -> int:
    """Handle volumes command."""
    for region, volumes in conductor.lineage_volumes(args.lineage).items():
        for volume in volumes:
            print(
                f"{region}\t"
                f"{volume.volume_id}\t"
                f"{volume.state}\t"
                f"{volume.size_gb}\t"
                f"{volume.attached_instance_id or '-'}"
            )
    return 0


def _run_snapshots_command(conductor: LineageConductor, args: argparse.Namespace) -> int:
    """Handle snapshots command."""
    for region, snapshots in conductor.lineage_snapshots(args.lineage, args.region).items():
        for snapshot in snapshots:
            print(
                f"{region}\t"
                f"{snapshot.snapshot_id}\t"
                f"{snapshot.created_at.isoformat()}\t"
                f"{snapshot.state}\t"
                f"{snapshot.volume_id or '-'}"
            )
    return 0


def _print_deleted(deleted: Mapping[str, tuple[str, ...]]) -> None:
    for snapshot_ids in deleted.values():
        for snapshot_id in snapshot_ids:
            print(f"deleted\t{snapshot_id}")


def _add_attach_command(subparsers: Any) -> None:
    """Register attach subcommand."""
    parser = subparsers.add_parser("attach", help="Attach a new volume continuing a lineage")
    parser.add_argument("instance_id", help="Instance receiving the volume, e.g. i-0abc1234")
    parser.add_argument("--lineage", required=True, help="Lineage name")
    parser.add_argument("--size", type=int, required=True, help="Volume size in GB")
    parser.add_argument("--device", required=True, help="Device path, e.g. /dev/sdf")
    parser.add_argument("--snapshot-id", help="Explicit source snapshot id")
    parser.add_argument("--timeout", type=int, help="Seconds to wait for the attachment")
    parser.add_argument(
        "--tag",
        action="append",
        default=[],
        help="Extra tag applied after the lineage tag (repeatable)",
    )


def _add_snapshot_command(subparsers: Any) -> None:
    """Register snapshot subcommand."""
    parser = subparsers.add_parser("snapshot", help="Snapshot a lineage")
    parser.add_argument("--lineage", required=True, help="Lineage name")
    parser.add_argument(
        "--volume-id",
        help="Snapshot this volume into the lineage instead of the lineage's own volumes",
    )
    parser.add_argument("--keep", type=int, help="Snapshots to retain per region")
    parser.add_argument("--timeout", type=int, help="Seconds to wait for readiness")
    parser.add_argument(
        "--tag",
        action="append",
        default=[],
        help="Extra tag applied after the lineage tag (repeatable)",
    )


def _add_prune_command(subparsers: Any) -> None:
    """Register prune subcommand."""
    parser = subparsers.add_parser("prune", help="Delete old lineage snapshots per region")
    parser.add_argument("--lineage", required=True, help="Lineage name")
    parser.add_argument("--keep", type=int, required=True, help="Snapshots to retain per region")


def _add_volumes_command(subparsers: Any) -> None:
    """Register volumes subcommand."""
    parser = subparsers.add_parser("volumes", help="List lineage volumes")
    parser.add_argument("--lineage", required=True, help="Lineage name")


def _add_snapshots_command(subparsers: Any) -> None:
    """Register snapshots subcommand."""
    parser = subparsers.add_parser("snapshots", help="List lineage snapshots, newest first")
    parser.add_argument("--lineage", required=True, help="Lineage name")
    parser.add_argument("--region", help="Restrict the listing to one region")
