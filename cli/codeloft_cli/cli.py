"""CLI entry point for the ``codeloft`` command."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .client import ApiClient, ApiError
from .config import PushConfig, load_config

_LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Codeloft editor command-line interface")
    subparsers = parser.add_subparsers(dest="command", required=True)

    push_parser = subparsers.add_parser(
        "push", help="Upload a local directory into a project"
    )
    push_parser.add_argument(
        "--config",
        dest="config",
        type=Path,
        required=True,
        help="Path to the push configuration file (YAML or JSON)",
    )

    subparsers.add_parser("projects", help="List projects")

    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging verbosity (DEBUG, INFO, WARNING, ERROR)",
    )

    parser.add_argument(
        "--api-url",
        dest="api_url",
        default=None,
        help="Override the API base URL",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure root logger for console output."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(name)s - %(message)s",
    )


def _resolve_project(client: ApiClient, config: PushConfig) -> tuple[str, bool]:
    """Return the target project id and whether it was created by this push."""

    if config.project_id:
        return config.project_id, False
    for project in client.list_projects():
        if project.get("name") == config.project_name:
            return str(project["id"]), False
    created = client.create_project(config.project_name or "", config.description)
    return str(created["id"]), True


def handle_push(config_path: Path, api_url: str | None) -> int:
    """Handle ``codeloft push`` commands."""

    _LOGGER.debug("Loading configuration from %s", config_path)
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        _LOGGER.error("Failed to load configuration: %s", exc)
        return 1

    client = ApiClient(base_url=api_url)
    try:
        project_id, created = _resolve_project(client, config)
        if created:
            client.init_repo(project_id)

        uploaded: list[str] = []
        for relative, local_path in config.collect_files():
            try:
                content = local_path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                _LOGGER.warning("Skipping non-text file %s", local_path)
                continue
            client.add_file(project_id, relative, content)
            uploaded.append(relative)
        _LOGGER.info("Uploaded %d files to project %s", len(uploaded), project_id)

        if config.commit_message and uploaded:
            client.stage(project_id, uploaded)
            client.commit(project_id, config.commit_message, config.commit_author)
    except ApiError as exc:
        _LOGGER.error("Push failed: %s", exc)
        return 2

    return 0


def handle_projects(api_url: str | None) -> int:
    """Handle ``codeloft projects`` commands."""

    client = ApiClient(base_url=api_url)
    try:
        projects = client.list_projects()
    except ApiError as exc:
        _LOGGER.error("Listing projects failed: %s", exc)
        return 2
    for project in projects:
        print(f"{project['id']}\t{project['name']}\t{project.get('updated_at', '')}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``codeloft`` CLI."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    _LOGGER.debug("CLI arguments: %s", args)

    if args.command == "push":
        return handle_push(args.config, args.api_url)
    if args.command == "projects":
        return handle_projects(args.api_url)

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
