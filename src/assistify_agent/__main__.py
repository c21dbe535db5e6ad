"""
Assistify Agent - Entry Point

Runs the HTTP service or one-off audit maintenance commands.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .data.models.audit import AuditFilters, AuditStatus
from .data.repos.audit import AuditRepository
from .data.repos.base import StoreError
from .jobs.retention import RetentionJob

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assistify-agent",
        description="Assistify ability dispatch and audit service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the HTTP service
  python -m assistify_agent serve --port 8000

  # Delete audit records older than the configured retention
  python -m assistify_agent cleanup

  # Export the orders audit trail to CSV
  python -m assistify_agent export --category orders -o orders.csv

  # Enable debug logging
  python -m assistify_agent --debug serve
"""
    )
    parser.add_argument(
        "--config",
        help="Path to assistify.yaml (default: search working directory)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", help="Bind address (overrides config)")
    serve.add_argument("--port", type=int, help="Port (overrides config)")
    serve.add_argument(
        "--no-retention",
        action="store_true",
        help="Do not schedule audit retention cleanup"
    )

    cleanup = subparsers.add_parser("cleanup", help="Delete expired audit records")
    cleanup.add_argument(
        "--days",
        type=int,
        help="Retention period in days (overrides config)"
    )

    export = subparsers.add_parser("export", help="Export audit records as CSV")
    export.add_argument("--category", help="Filter by action category")
    export.add_argument(
        "--status",
        choices=[s.value for s in AuditStatus],
        help="Filter by status"
    )
    export.add_argument("--limit", type=int, help="Maximum rows (overrides config)")
    export.add_argument("-o", "--output", help="Output file (default: stdout)")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)

    try:
        if args.command == "serve":
            from .server import run_server

            if args.host:
                config.server.host = args.host
            if args.port:
                config.server.port = args.port
            if args.no_retention:
                config.audit.cleanup_interval_hours = 0
            run_server(config, log_level="debug" if args.debug else "info")
            return 0

        repository = AuditRepository(config.database_path)

        if args.command == "cleanup":
            days = args.days if args.days is not None else config.audit.retention_days
            deleted = RetentionJob(repository, retention_days=days).run_once()
            print(f"Deleted {deleted} audit records older than {days} days")
            return 0

        if args.command == "export":
            filters = AuditFilters(action_category=args.category, status=args.status)
            content = repository.export_csv(filters, limit=args.limit or config.audit.export_limit)
            if args.output:
                Path(args.output).write_text(content, encoding="utf-8")
                logger.info(f"Wrote {args.output}")
            else:
                sys.stdout.write(content)
            return 0

    except StoreError as e:
        logger.error(f"Audit store error: {e}")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


def run():
    """Entry point for console script"""
    sys.exit(main())


if __name__ == '__main__':
    run()
