"""
Command-line interface for the BillSignal pipeline.

Usage:
    billsignal init-db
    billsignal ingest --year 2025 --count 20 --state CA
    billsignal analyze --limit 30 --json
    billsignal serve --port 8000
    python -m billsignal.cli --help
"""

import asyncio
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from ..config import get_settings
from ..exceptions import ConfigurationError
from ..logging_config import configure_logging
from ..models.analysis import AnalysisReport, IngestionReport
from ..services.pipeline_service import PipelineService

logger = logging.getLogger(__name__)


def _print_ingestion(report: IngestionReport) -> None:
    print("\n" + "=" * 60)
    print("INGESTION RESULTS")
    print("=" * 60)
    print(f"Target year: {report.target_year}")
    print(f"Candidates: {report.candidates}")
    print(f"Inserted: {report.inserted_count}")
    print(f"Already stored: {report.skipped_existing}")
    print(f"Errors: {len(report.errors)}")

    if report.per_jurisdiction:
        print("\nPer state:")
        for state, count in sorted(report.per_jurisdiction.items()):
            print(f"  {state}: {count}")

    _print_errors(report.errors)
    print("=" * 60 + "\n")


def _print_analysis(report: AnalysisReport) -> None:
    print("\n" + "=" * 60)
    print("ANALYSIS RESULTS")
    print("=" * 60)
    print(f"Batches: {report.batches}")
    print(f"Analyzed: {report.processed_count}")
    print(f"Errors: {len(report.errors)}")
    if report.processed_ids:
        print(f"LegiScan ids: {', '.join(str(i) for i in report.processed_ids)}")

    _print_errors(report.errors)
    print("=" * 60 + "\n")


def _print_errors(errors) -> None:
    if not errors:
        return
    print("\nErrors:")
    for i, error in enumerate(errors[:5], 1):  # Show first 5
        subject = f" bill {error.external_id}" if error.external_id else ""
        print(f"  {i}. [{error.stage}]{subject} {error.message}")
    if len(errors) > 5:
        print(f"  ... and {len(errors) - 5} more errors")


def _write_output(payload: dict, output_file: str) -> None:
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    print(f"Results saved to: {output_path.absolute()}")


async def run_command(args: argparse.Namespace, service: PipelineService) -> int:
    """
    Execute one CLI command against an initialized service.

    Returns:
        Process exit code
    """
    if args.command == "init-db":
        await service.database.create_tables()
        print("Database tables created")
        return 0

    try:
        if args.command == "ingest":
            report = await service.ingest(
                jurisdictions=args.state or None,
                target_year=args.year,
                target_count=args.count,
                per_jurisdiction=True if args.per_state else None,
            )
            payload = report.to_response()
            if not args.json:
                _print_ingestion(report)
        else:
            report = await service.analyze(limit=args.limit)
            payload = report.to_response()
            if not args.json:
                _print_analysis(report)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        if args.json:
            print(json.dumps({"success": False, "error": str(e)}))
        return 2

    if args.json:
        print(json.dumps(payload, indent=2, default=str))

    if args.output:
        _write_output(payload, args.output)

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="billsignal",
        description="Ingest legislative bills and predict their stock-market impact",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create tables in a fresh database
  billsignal init-db

  # Ingest the 20 newest California bills of 2025
  billsignal ingest --state CA --year 2025 --count 20

  # Analyze up to 30 unanalyzed bills and print the report as JSON
  billsignal analyze --limit 30 --json
        """
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run report as JSON"
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Save the run report to a JSON file"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Discover and store new bills")
    ingest.add_argument(
        "--state",
        action="append",
        help="Two-letter state code (repeatable; default: all configured)"
    )
    ingest.add_argument("--year", type=int, help="Target year (default: current)")
    ingest.add_argument("--count", type=int, help="Maximum new bills to store")
    ingest.add_argument(
        "--per-state",
        action="store_true",
        help="Apply --count per state instead of nationwide"
    )

    analyze = subparsers.add_parser("analyze", help="Analyze unanalyzed bills")
    analyze.add_argument("--limit", type=int, help="Maximum bills to analyze")

    subparsers.add_parser("init-db", help="Create database tables")

    serve = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", type=str, help="Bind address (default: APP_API_HOST)")
    serve.add_argument("--port", type=int, help="Port (default: APP_API_PORT)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    return parser


def serve_api(args: argparse.Namespace) -> None:
    """Run the FastAPI app"""
    settings = get_settings()
    host = args.host or settings.app.api_host
    port = args.port or settings.app.api_port

    logger.info(f"Starting BillSignal API on http://{host}:{port} (docs at /docs)")

    uvicorn.run(
        "billsignal.api.main:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level="debug" if args.verbose else "info"
    )


async def _main(args: argparse.Namespace) -> int:
    async with PipelineService(get_settings()) as service:
        return await run_command(args, service)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    configure_logging("DEBUG" if args.verbose else get_settings().app.log_level)
    if args.verbose:
        logger.debug("Verbose logging enabled")

    if args.command == "serve":
        serve_api(args)
        return

    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
