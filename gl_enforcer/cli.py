"""CLI entry point for gl-enforcer."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from gl_enforcer.client import GitLabClient
from gl_enforcer.config import load_config
from gl_enforcer.engine import Enforcer
from gl_enforcer.exceptions import ConfigError, EnforcerError
from gl_enforcer.logging_utils import setup_logging
from gl_enforcer.models import DEFAULT_CONFIG_PATH, DEFAULT_GITLAB_URL, DEFAULT_MAX_RETRIES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gl-enforcer",
        description="Enforce a declarative settings document on every project of a GitLab group.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
    GITLAB_TOKEN           - GitLab Personal Access Token (required)
    GITLAB_URL             - GitLab instance URL (default: https://gitlab.com)
    GITLAB_ENFORCER_CONFIG - Path of the configuration file (default: config.yml)

Examples:
    # Show which projects the configuration selects
    gl-enforcer --config config.yml list-projects

    # Preview a run without changing anything
    gl-enforcer --config config.yml --dry-run sync

    # Enforce the configuration and print the change log
    gl-enforcer --config config.yml sync
""",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Configuration file (default: from GITLAB_ENFORCER_CONFIG env or {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without making changes")
    parser.add_argument(
        "--json", action="store_true", dest="json_output", help="Output results as JSON lines (to stderr)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--gitlab-url", default=None, help="GitLab instance URL (default: from GITLAB_URL env or https://gitlab.com)"
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help=f"Maximum retry attempts for transient errors (default: {DEFAULT_MAX_RETRIES})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")
    subparsers.add_parser("sync", help="Sync GitLab project settings with the configuration")
    subparsers.add_parser("list-projects", help="List the projects the configuration selects")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    gitlab_url = args.gitlab_url or os.environ.get("GITLAB_URL", DEFAULT_GITLAB_URL)
    config_path = Path(args.config or os.environ.get("GITLAB_ENFORCER_CONFIG", DEFAULT_CONFIG_PATH))

    token = os.environ.get("GITLAB_TOKEN")
    if not token:
        print("ERROR: GITLAB_TOKEN environment variable is not set.", file=sys.stderr)
        return 1

    logger = setup_logging(json_mode=args.json_output, verbose=args.verbose)

    try:
        desired = load_config(config_path)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    client = GitLabClient(base_url=gitlab_url, token=token, max_retries=args.max_retries)
    enforcer = Enforcer(client, desired, dry_run=args.dry_run)

    if args.command == "list-projects":
        try:
            projects = enforcer.discover()
        except EnforcerError as e:
            logger.error(f"Fatal: {e}")
            return 1
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return 130
        for project in projects:
            print(f"{project.id}\t{project.full_path}")
        return 0

    if args.dry_run:
        logger.info("DRY-RUN MODE - no changes will be made")

    try:
        projects = enforcer.run()
    except EnforcerError as e:
        logger.error(f"Fatal: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    report = enforcer.change_report()
    if report:
        sys.stdout.write(report)

    summary = enforcer.summary()
    logger.info(
        f"Done: {len(projects)} projects, {summary['changed']} {'would change' if args.dry_run else 'changed'}, "
        f"{summary['already_set']} already set, {summary['errors']} errors"
    )

    return 1 if summary["errors"] > 0 else 0


if __name__ == "__main__":
    sys.exit(main())
