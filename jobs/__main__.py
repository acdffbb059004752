"""Command-line entrypoint for snapshot jobs."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import Iterable

from jobs.config import TRACKED_ENTITIES, TrackedEntity, iter_entities
from jobs.snapshot import fetch_aggregate_snapshot, main as run_snapshot
from pipelines.insights import risk_index
from pipelines.model import ShockScenario
from pipelines.scenario import apply_shock
from storage.exports import EXPORT_FORMATS, export_snapshot


def _format_entity(entity: TrackedEntity) -> str:
    return (
        f"{entity.id}: symbol={entity.symbol} name='{entity.display_name}' "
        f"sector={entity.sector}"
    )


def _resolve_entities_from_cli(raw: str | None) -> tuple[TrackedEntity, ...] | None:
    if not raw:
        return None
    ids = [item.strip() for item in raw.split(",") if item.strip()]
    entities = tuple(iter_entities(ids))
    unknown = set(ids) - {entity.id for entity in entities}
    if unknown:
        raise SystemExit(f"Unknown entity ids: {', '.join(sorted(unknown))}")
    return entities


def _configure_logging(level: str | None) -> None:
    if level:
        os.environ["LOG_LEVEL"] = level
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))


def _run_shock(entities: Iterable[TrackedEntity] | None, shocks: ShockScenario) -> int:
    snapshot = asyncio.run(fetch_aggregate_snapshot(entities=entities))
    shocked = apply_shock(snapshot, shocks)
    print(f"Risk index: {risk_index(snapshot.entities)} -> {risk_index(shocked.entities)}")
    for before, after in zip(snapshot.entities, shocked.entities):
        print(
            f"{after.display_name} ({after.sector}): "
            f"{before.latest_score} -> {after.latest_score}"
        )
    return 0


def _run_export(entities: Iterable[TrackedEntity] | None, fmt: str, output: str) -> int:
    snapshot = asyncio.run(fetch_aggregate_snapshot(entities=entities))
    path = export_snapshot(snapshot, output, fmt=fmt)
    print(f"Wrote {fmt} score history to {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Risk snapshot job runner")
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )
    parser.add_argument(
        "--entities",
        help="Comma-separated list of entity ids to include (defaults to all tracked)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("snapshot", help="Fetch all sources and print the snapshot as JSON")
    subparsers.add_parser("list-entities", help="Show tracked entity metadata")

    shock_parser = subparsers.add_parser("shock", help="Apply scenario shocks to a fresh snapshot")
    shock_parser.add_argument("--interest-rate", type=float, default=0.0)
    shock_parser.add_argument("--fx", type=float, default=0.0)
    shock_parser.add_argument("--commodity-price", type=float, default=0.0)

    export_parser = subparsers.add_parser("export", help="Export score histories to a file")
    export_parser.add_argument("--format", choices=sorted(EXPORT_FORMATS), default="csv")
    export_parser.add_argument("--output", required=True, help="Destination file path")

    args = parser.parse_args(argv)

    if args.command == "list-entities":
        for entity in TRACKED_ENTITIES:
            print(_format_entity(entity))
        return 0

    entities = _resolve_entities_from_cli(args.entities)

    if args.command == "snapshot":
        if args.log_level:
            os.environ["LOG_LEVEL"] = args.log_level
        return run_snapshot(entities)

    _configure_logging(args.log_level)
    if args.command == "shock":
        shocks = ShockScenario(
            interest_rate=args.interest_rate,
            fx=args.fx,
            commodity_price=args.commodity_price,
        )
        return _run_shock(entities, shocks)
    if args.command == "export":
        return _run_export(entities, args.format, args.output)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
