"""Operator commands that run outside the bot: demo accounts, portal
maintenance, tenant sync, brand assets, CWR exports and payout statements."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .application.bootstrap import bootstrap_app
from .application.container import AppContainer
from .application.demo import DemoCatalogSeeder
from .domain.portal import MAINTENANCE_ACTIONS
from .main import configure_audit_logs, load_app_config

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="rightsdesk-admin", description="rightsdesk operator commands")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("demo-user", help="Create a demo subscriber with a seeded catalogue")

    maintenance = sub.add_parser("maintenance", help="Run client portal maintenance")
    maintenance.add_argument("--action", choices=MAINTENANCE_ACTIONS, default="full_maintenance")
    maintenance.add_argument("--force-all", action="store_true", help="Delete every expired invitation")

    tenants = sub.add_parser("sync-tenants", help="Load tenants.yaml into the database")
    tenants.add_argument("--file", type=Path, default=None)
    tenants.add_argument("--keep-missing", action="store_true")

    logo = sub.add_parser("cache-logo", help="Download a tenant logo into local storage")
    logo.add_argument("slug")

    cwr = sub.add_parser("export-cwr", help="Write a CWR 2.1 file for the given works")
    cwr.add_argument("--user", type=int, required=True)
    cwr.add_argument("--work", type=int, action="append", required=True, dest="works")
    cwr.add_argument("--output", type=Path, default=None)

    statement = sub.add_parser("statement", help="Print a payout statement")
    statement.add_argument("payout_id", type=int)
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, container: AppContainer) -> int:
    if args.command == "demo-user":
        seeder = DemoCatalogSeeder(
            copyrights=container.copyright_service,
            contracts=container.contract_service,
            sync=container.sync_service,
        )
        creds = await container.accounts_service.create_demo_user(seeder)
        print(f"email: {creds.email}\npassword: {creds.password}")
        return 0

    if args.command == "maintenance":
        result = await container.maintenance_service.run_maintenance(args.action, force_all=args.force_all)
        print(json.dumps(result, indent=2, default=str))
        return 1 if any(key.endswith("_error") for key in result) else 0

    if args.command == "sync-tenants":
        path = str(args.file or container.config.tenants_file)
        await container.sync_tenants(path, delete_missing=not args.keep_missing)
        logger.info("Tenants synced from %s", path)
        return 0

    if args.command == "cache-logo":
        url = await container.tenant_service.cache_brand_logo(args.slug)
        if not url:
            print(f"Logo for {args.slug} was not cached", file=sys.stderr)
            return 1
        print(url)
        return 0

    if args.command == "export-cwr":
        export = await container.copyright_service.export_works(args.user, args.works)
        if not export:
            print("No exportable works found", file=sys.stderr)
            return 1
        target = args.output or Path(export.filename)
        target.write_text(export.content, encoding="utf-8")
        print(f"{target} ({export.record_count} records)")
        return 0

    if args.command == "statement":
        statement = await container.payout_service.statement(args.payout_id)
        if not statement:
            print(f"Payout {args.payout_id} not found", file=sys.stderr)
            return 1
        print(container.statement_renderer.render(statement))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


async def _amain(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = load_app_config(require_token=False)
    configure_audit_logs(config)
    async with bootstrap_app(config) as container:
        return await run(args, container)


def main(argv: list[str] | None = None) -> None:
    sys.exit(asyncio.run(_amain(argv)))


if __name__ == "__main__":
    main()
