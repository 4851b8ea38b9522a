#!/usr/bin/env python3
"""
Predictive Maintenance Engine - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
This is the ONE executable entry point for the engine.

- api         Serve the REST API (uvicorn)
- scan        Run one evaluation pass and exit
- schedule    Run evaluation passes every --interval seconds
- sync-stock  Write recalculated stock levels to inventory
- init-db     Create database tables

Handles SIGINT/SIGTERM gracefully in schedule mode.

============================================================
USAGE
============================================================
    python app.py init-db
    python app.py scan --company acme --company globex
    python app.py schedule --interval 3600
    python app.py api --port 8000

Environment-based configuration:
    DATABASE_URL=postgresql://... LOG_LEVEL=DEBUG python app.py scan

============================================================
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from typing import List, Optional

from core.exceptions import ConfigurationError
from database.engine import (
    create_database_engine,
    create_session_factory,
    initialize_database,
)
from predictive_maintenance import (
    MaintenanceEngineConfig,
    MaintenanceScanner,
    MaintenanceScheduler,
    ScanSummary,
    StaticFeatureFlagProvider,
    get_default_config,
    set_default_config,
)


COMMANDS = ["api", "scan", "schedule", "sync-stock", "init-db"]


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "json") -> logging.Logger:
    """
    Set up structured logging.

    Args:
        level: Log level
        log_format: Output format (json or text)

    Returns:
        Configured logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("predictive_maintenance")


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="maintenance-engine",
        description="Predictive maintenance alerting engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  api         - Serve the REST API
  scan        - Run one evaluation pass and exit
  schedule    - Run evaluation passes periodically
  sync-stock  - Write recalculated min stock / reorder point to inventory
  init-db     - Create database tables

Examples:
  %(prog)s scan --company acme
  %(prog)s schedule --interval 900 --log-format text
        """
    )

    parser.add_argument("command", choices=COMMANDS, help="What to run")

    # --------------------------------------------------------
    # Scan Options
    # --------------------------------------------------------
    scan_group = parser.add_argument_group("Scan Options")

    scan_group.add_argument(
        "--company",
        action="append",
        dest="companies",
        metavar="COMPANY_ID",
        help="Tenant to process (repeatable, default: every entitled tenant)",
    )

    scan_group.add_argument(
        "--interval",
        type=int,
        metavar="SECONDS",
        help="Seconds between scheduled passes (default: from config)",
    )

    scan_group.add_argument(
        "--skip-feature-check",
        action="store_true",
        help="Treat the named --company tenants as entitled",
    )

    # --------------------------------------------------------
    # API Options
    # --------------------------------------------------------
    api_group = parser.add_argument_group("API Options")

    api_group.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    api_group.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")

    # --------------------------------------------------------
    # Logging / Config Options
    # --------------------------------------------------------
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default="json",
        help="Logging format (default: json)",
    )

    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="YAML config file (default: environment variables)",
    )

    parser.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="Override DATABASE_URL",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    return parser


def validate_args(args) -> List[str]:
    """Validate parsed arguments, returning error messages."""
    errors = []

    if args.command == "sync-stock" and not args.companies:
        errors.append("sync-stock requires at least one --company")

    if args.skip_feature_check and not args.companies:
        errors.append("--skip-feature-check requires --company")

    if args.interval is not None and args.interval < 1:
        errors.append("--interval must be >= 1")

    return errors


def build_config(args) -> MaintenanceEngineConfig:
    if not args.config:
        return get_default_config()

    config = MaintenanceEngineConfig.from_yaml(args.config)
    set_default_config(config)
    return config


# ============================================================
# COMMANDS
# ============================================================

def log_summaries(summaries: List[ScanSummary]) -> int:
    """Log each summary. Returns the number of tenants with failures."""
    logger = logging.getLogger(__name__)
    failing = 0

    for summary in summaries:
        logger.info(f"Scan summary: {json.dumps(summary.to_dict())}")
        if summary.failed:
            failing += 1

    return failing


async def run_command(args, config: MaintenanceEngineConfig) -> int:
    """
    Run a non-API command.

    Returns:
        Exit code
    """
    logger = logging.getLogger(__name__)

    engine = create_database_engine(args.database_url)
    session_factory = create_session_factory(engine)

    scanner_kwargs = {}
    if args.skip_feature_check:
        companies = args.companies
        scanner_kwargs["flags_factory"] = lambda session: StaticFeatureFlagProvider(companies)

    scanner = MaintenanceScanner(session_factory, config=config, **scanner_kwargs)

    try:
        if args.command == "init-db":
            await initialize_database(engine)
            return 0

        if args.command == "scan":
            summaries = await scanner.scan_tenants(args.companies)
            return 1 if log_summaries(summaries) else 0

        if args.command == "sync-stock":
            exit_code = 0
            for company_id in args.companies:
                result = await scanner.sync_stock_levels(company_id)
                if result.failed:
                    exit_code = 1
            return exit_code

        if args.command == "schedule":
            scheduler = MaintenanceScheduler(scanner, interval_seconds=args.interval, company_ids=args.companies)

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, scheduler.stop)
                except NotImplementedError:
                    # Windows event loops have no signal handlers
                    pass

            logger.info("Starting scan scheduler (press Ctrl+C to stop)...")
            await scheduler.run_forever()
            return 0

        logger.error(f"Unknown command: {args.command}")
        return 2

    except ConfigurationError as e:
        logger.error(e.to_log_format())
        return 2
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        await engine.dispose()


def run_api(args, config: MaintenanceEngineConfig) -> int:
    import uvicorn
    from maintenance_api.main import create_app

    session_factory = None
    if args.database_url:
        session_factory = create_session_factory(create_database_engine(args.database_url))

    uvicorn.run(create_app(session_factory=session_factory, config=config), host=args.host, port=args.port)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    setup_logging(args.log_level, args.log_format)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        logging.getLogger(__name__).error(e.to_log_format())
        return 2

    if args.command == "api":
        return run_api(args, config)

    return asyncio.run(run_command(args, config))


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
