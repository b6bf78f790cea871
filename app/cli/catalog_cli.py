# app/cli/catalog_cli.py

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from app.config import get_settings
from app.db.session import SessionLocal
from app.logging_config import configure_logging
from app.services.catalog import (
    CatalogAuditReport,
    audit_catalog,
    load_catalog,
    load_catalog_file,
    seed_catalog,
)


def _print_report(report: CatalogAuditReport) -> None:
    print("Catalog audit:")
    for parent_id, child_id in report.broken_links:
        target = child_id if child_id else "<no child part or assembly>"
        print(f"  broken link:       {parent_id} -> {target}")
    for item_id in report.ambiguous_ids:
        print(f"  ambiguous id:      {item_id} (both part and assembly)")
    for parent_id, child_id, quantity in report.invalid_quantities:
        print(f"  invalid quantity:  {parent_id} -> {child_id} ({quantity!r})")
    for cycle in report.cycles:
        print(f"  cycle:             {' -> '.join(cycle)}")
    for assembly_id in report.empty_assemblies:
        print(f"  empty assembly:    {assembly_id}")
    print("  result:            " + ("OK" if report.ok else "DEFECTS FOUND"))


def cmd_seed(args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    path = Path(args.catalog_path).expanduser().resolve()
    snapshot = load_catalog_file(path)

    report = audit_catalog(snapshot)
    if not report.ok:
        logger.warning("Seeding a catalog with integrity defects from %s", path)

    with SessionLocal() as db:
        result = seed_catalog(db, snapshot)

    print("Seed complete:")
    print(f"  parts:       {result.parts_created} created, {result.parts_updated} updated")
    print(f"  assemblies:  {result.assemblies_created} created, {result.assemblies_updated} updated")
    print(f"  components:  {result.components_written}")
    return 0


def cmd_audit(args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    if args.catalog_path:
        snapshot = load_catalog_file(Path(args.catalog_path).expanduser().resolve())
    else:
        logger.info("Auditing catalog in %s", get_settings().database_url)
        with SessionLocal() as db:
            snapshot = load_catalog(db)

    report = audit_catalog(snapshot)
    _print_report(report)
    return 0 if report.ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CleanStation catalog CLI: seed the part/assembly catalog and audit its integrity."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="Upsert a JSON catalog into the database.")
    seed.add_argument("catalog_path", type=str, help="Path to the catalog JSON file.")
    seed.set_defaults(func=cmd_seed)

    audit = sub.add_parser(
        "audit",
        help="Report broken links, ambiguous ids, bad quantities and cycles.",
    )
    audit.add_argument(
        "catalog_path",
        type=str,
        nargs="?",
        default=None,
        help="Optional catalog JSON file. Defaults to the catalog in DATABASE_URL.",
    )
    audit.set_defaults(func=cmd_audit)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
