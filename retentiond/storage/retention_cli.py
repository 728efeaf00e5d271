"""
Retention CLI for retentiond.

This module provides command-line interface for running blob retention
cleanups and inspecting the retention policy table.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import structlog

from retentiond.config.settings import RetentionSettings, load_settings
from retentiond.storage.blob_client import create_blob_store
from retentiond.storage.retention_config import RetentionConfigError, RetentionConfigManager
from retentiond.storage.retention_manager import create_retention_manager
from retentiond.storage.retention_models import CleanupReport

EXIT_OK = 0
EXIT_PIPELINE_ERRORS = 1
EXIT_CONFIG_ERROR = 2


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )
    # Route structlog through stdlib so stdout stays clean for --json
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def print_report(report: CleanupReport):
    """Display a cleanup report as a table."""
    mode = "DRY RUN" if report.dry_run else "LIVE"
    print(f"\nCleanup completed ({mode}) in {report.duration_seconds:.2f}s")
    print(f"{'pipeline':<34} {'deleted':>8} {'kept':>8} {'skipped':>8} {'errors':>8}")

    for pipeline in report.pipelines:
        status_icon = "✗" if pipeline.failed else "✓"
        print(f"{status_icon} {pipeline.name:<32} {pipeline.deleted:>8} {pipeline.kept:>8} "
              f"{pipeline.skipped:>8} {pipeline.errors:>8}")
        if pipeline.error_message:
            print(f"  Error: {pipeline.error_message}")

    totals = report.totals
    print(f"  {'TOTAL':<32} {totals.deleted:>8} {totals.kept:>8} {totals.skipped:>8} {totals.errors:>8}")


async def run_cleanup(args, settings: RetentionSettings) -> int:
    """Run data cleanup operation."""
    store = create_blob_store(
        settings.require_blob_token(),
        api_url=settings.blob_api_url,
        page_size=settings.list_page_size,
        max_retries=settings.max_retries,
    )
    try:
        manager = create_retention_manager(
            args.config or settings.config_path,
            store,
            root_prefix=settings.root_prefix,
            logs_dir=args.logs_dir or settings.logs_dir,
        )
        report = await manager.run_cleanup(dry_run=args.dry_run)
    finally:
        await store.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)

    return EXIT_PIPELINE_ERRORS if report.totals.errors else EXIT_OK


def show_policies(args, settings: RetentionSettings) -> int:
    """Show retention policies."""
    config_manager = RetentionConfigManager(args.config or settings.config_path, root_prefix=settings.root_prefix)
    status = config_manager.describe()

    if args.json:
        print(json.dumps(status, indent=2))
        return EXIT_OK

    print("Blob Retention Policies")
    print("=" * 50)
    for row in status['policies']:
        days = row['retention_days']
        window = "delete all" if days is None else f"{days} days"
        print(f"\n{row['name'].upper()}")
        print(f"  Prefix: {row['prefix']}")
        print(f"  Retention: {window}")
        print(f"  Description: {row['description']}")

    print("\nProtected prefixes:")
    for prefix in status['protected_prefixes']:
        print(f"  {prefix}")

    print("\nValid session prefixes:")
    for prefix in status['valid_session_prefixes']:
        print(f"  {prefix}")

    print(f"\nDelete batch size: {status['batch_size']}")
    return EXIT_OK


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Blob Data Retention Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run cleanup for every policy and sweep
  retentiond-retention cleanup

  # Report what would be deleted without deleting
  retentiond-retention cleanup --dry-run

  # Show retention policies
  retentiond-retention policies --config configs/retention.yaml
        """
    )

    # Global arguments
    parser.add_argument('--config', default=None,
                        help='Path to retention configuration file (default: $RETENTION_CONFIG_PATH)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--json', action='store_true',
                        help='Print machine-readable JSON output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    cleanup_parser = subparsers.add_parser('cleanup', help='Run blob cleanup')
    cleanup_parser.add_argument('--dry-run', action='store_true',
                                help='Classify without actual deletion')
    cleanup_parser.add_argument('--logs-dir', default=None,
                                help='Directory for the JSON-lines audit trail')

    subparsers.add_parser('policies', help='Show retention policies')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_PIPELINE_ERRORS

    setup_logging(args.verbose)

    try:
        settings = load_settings()
        if args.command == 'cleanup':
            return asyncio.run(run_cleanup(args, settings))
        elif args.command == 'policies':
            return show_policies(args, settings)
        print(f"Unknown command: {args.command}")
        return EXIT_PIPELINE_ERRORS

    except RetentionConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return EXIT_PIPELINE_ERRORS


if __name__ == '__main__':
    sys.exit(main())
