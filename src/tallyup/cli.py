"""Command-line access to the pipeline orchestrator.

Usage:
    tallyup create m-123 --report-time 21:00:00 --timezone US/Eastern
    tallyup status m-123
    tallyup setup-all
    tallyup run-stage fetch-sales-data m-123
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Sequence

from tallyup.core.config import AppSettings
from tallyup.core.exceptions import TallyUpError
from tallyup.core.logging_config import configure_logging
from tallyup.models.api import ErrorResponse
from tallyup.pipeline.services import Services, create_services


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tallyup", description="Manage scheduled commission report pipelines")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("create", "update"):
        cmd = sub.add_parser(name, help=f"{name.title()} a merchant's report pipeline")
        cmd.add_argument("merchant_id")
        cmd.add_argument("--report-time", required=True, help="Local report time, HH:MM[:SS]")
        cmd.add_argument("--timezone", required=True, help="US/Eastern, US/Central, ... or Eastern")

    for name, help_text in (("delete", "Remove a merchant's triggers"), ("status", "Show pipeline status")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("merchant_id")

    sub.add_parser("setup-all", help="Recreate triggers for every merchant with settings")

    cmd = sub.add_parser("run-stage", help="Invoke a stage handler now")
    cmd.add_argument("handler_id", help="schedule-data-fetch, fetch-sales-data or generate-scheduled-report")
    cmd.add_argument("merchant_id")
    return parser


def run_command(args: argparse.Namespace, services: Services) -> dict[str, Any]:
    orchestrator = services.orchestrator
    if args.command == "create":
        response = orchestrator.create_pipeline(args.merchant_id, args.report_time, args.timezone)
    elif args.command == "update":
        response = orchestrator.update_pipeline(args.merchant_id, args.report_time, args.timezone)
    elif args.command == "delete":
        response = orchestrator.delete_pipeline(args.merchant_id)
    elif args.command == "status":
        response = orchestrator.get_status(args.merchant_id)
    elif args.command == "setup-all":
        response = orchestrator.bulk_setup()
    else:
        try:
            response = services.stages.run(args.handler_id, args.merchant_id)
        except TallyUpError as exc:
            response = ErrorResponse.from_exception(exc)
    return response.model_dump(mode="json", by_alias=True)


def main(argv: Sequence[str] | None = None, services: Services | None = None) -> int:
    args = build_parser().parse_args(argv)
    if services is None:
        settings = AppSettings()
        configure_logging(settings.log_level)
        services = create_services(settings)

    payload = run_command(args, services)
    print(json.dumps(payload, indent=2))
    return 0 if payload.get("success", False) else 1


if __name__ == "__main__":
    sys.exit(main())
