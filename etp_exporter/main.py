"""ETP issues exporter entry point.

Two commands: sync (mirror issues and their comments from GitHub into the
store) and convert (turn stored issues into reports).
Usage: etp-issues-exporter sync [--since ISO] | etp-issues-exporter convert.
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from etp_exporter.adapters import GitHubAdapter
from etp_exporter.config import AppConfig, load_config
from etp_exporter.convert import ConversionPipeline, ConversionSummary
from etp_exporter.errors import ConfigurationError, ExporterError, TransportError
from etp_exporter.logging import setup_logging
from etp_exporter.store import open_store
from etp_exporter.sync import BackfillResult, CommentBackfillSync, IncrementalIssueSync, SyncResult

LOG = logging.getLogger("etp_exporter.main")


def parse_since(value: str | None) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid --since timestamp {value!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI: sync | convert."""
    parser = argparse.ArgumentParser(
        prog="etp-issues-exporter",
        description="Mirror ETP breakage issues from GitHub and convert them into reports",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sync = sub.add_parser("sync", help="Fetch issues and comments from GitHub into the store")
    sync.add_argument(
        "--since",
        default=None,
        help="Only fetch issues updated (and comments created) since this ISO timestamp",
    )
    sub.add_parser("convert", help="Convert stored issues into reports")
    return parser.parse_args(argv)


def run_sync(config: AppConfig, since: datetime | None = None) -> tuple[SyncResult, BackfillResult]:
    """Issue sync followed by comment backfill."""
    token = config.require_github()
    gh = config.github
    with open_store(config.store) as store, GitHubAdapter(
        token,
        gh.repository,
        api_url=gh.api_url,
        max_retry=gh.max_retry,
        max_failed_pages=gh.max_failed_pages,
        timeout=gh.timeout,
    ) as adapter:
        LOG.info("Initializing API connection...")
        try:
            login = adapter.get_authenticated_login()
        except TransportError as e:
            raise ConfigurationError(f"GitHub authentication failed: {e}") from e
        LOG.info("Logged in as %s", login)

        issues = store.collection(config.store.issues_collection)
        sync_result = IncrementalIssueSync(adapter, issues, per_page=gh.per_page).sync(since)
        backfill_result = CommentBackfillSync(adapter, issues, per_page=gh.per_page).backfill(since)
    return sync_result, backfill_result


def run_convert(config: AppConfig) -> ConversionSummary:
    """Convert all stored issues into reports."""
    with open_store(config.store) as store:
        pipeline = ConversionPipeline(
            store.collection(config.store.issues_collection),
            store.collection(config.store.reports_collection),
        )
        return pipeline.run()


def main(argv: list[str] | None = None) -> int:
    """Entry point: dispatch to sync or convert."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        LOG.error("Invalid configuration: %s", e)
        return 1
    setup_logging(config.logging)

    if args.check:
        print("Config OK:", config.github.repository, config.store.path)
        return 0

    try:
        if args.command == "sync":
            run_sync(config, parse_since(args.since))
        else:
            run_convert(config)
    except KeyboardInterrupt:
        return 0
    except ConfigurationError as e:
        LOG.error("Configuration error: %s", e)
        return 1
    except ExporterError as e:
        LOG.exception("Fatal error: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
