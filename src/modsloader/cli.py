# src/modsloader/cli.py

import argparse
import importlib.metadata
import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from modsloader import log_utils
from modsloader.catalog.reconciler import PassReport, Reconciler
from modsloader.catalog.scheduler import PassScheduler
from modsloader.catalog.service import ModCatalog
from modsloader.catalog.store import CatalogStore
from modsloader.catalog.upload import UploadHandler, UploadSubmission
from modsloader.catalog.writer import CatalogWriter
from modsloader.config import get_mod_entries, load_config
from modsloader.constants import DATABASE_FILE_NAME, DISTRIBUTION_NAME, RESTRICTION_TO_VARIANT
from modsloader.download.downloader import ArtifactDownloader
from modsloader.download.files import ContentStore
from modsloader.download.github_source import GithubReleaseSource
from modsloader.download.gitlab_source import GitlabDescriptionSource
from modsloader.download.interfaces import ModEntry
from modsloader.download.registry import SourceRegistry
from modsloader.exceptions import ModsLoaderError
from modsloader.utils import create_session


@dataclass
class Runtime:
    """Everything a command needs, wired from one configuration."""

    config: Dict[str, Any]
    entries: List[ModEntry]
    store: CatalogStore
    content_store: ContentStore
    catalog: ModCatalog
    reconciler: Reconciler
    uploads: UploadHandler

    def close(self) -> None:
        self.store.close()


def build_runtime(config: Dict[str, Any]) -> Runtime:
    """Create the session, sources, store and services described by `config`."""
    entries = get_mod_entries(config)
    timeout = config["REQUEST_TIMEOUT"]
    session = create_session()

    registry = SourceRegistry(
        [
            GithubReleaseSource(
                session,
                github_token=config.get("GITHUB_TOKEN"),
                allow_env_token=config.get("ALLOW_ENV_TOKEN", True),
                api_base=config["GITHUB_API_BASE"],
                timeout=timeout,
            ),
            GitlabDescriptionSource(
                session,
                api_base=config["GITLAB_API_BASE"],
                gitlab_base=config["GITLAB_BASE"],
                timeout=timeout,
            ),
        ]
    )

    store_dir = config["STORE_DIR"]
    store = CatalogStore(
        os.path.join(store_dir, DATABASE_FILE_NAME),
        public_base_url=config["PUBLIC_BASE_URL"],
    )
    content_store = ContentStore(store_dir)
    reconciler = Reconciler(
        entries, registry, ArtifactDownloader(session, timeout), store, content_store
    )
    uploads = UploadHandler(
        entries,
        config["UPLOAD_TOKENS"],
        CatalogWriter(store, content_store),
        lock_timeout=config["UPLOAD_LOCK_TIMEOUT"],
    )
    return Runtime(
        config=config,
        entries=entries,
        store=store,
        content_store=content_store,
        catalog=ModCatalog(store, content_store),
        reconciler=reconciler,
        uploads=uploads,
    )


def get_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _configure_logging(config: Dict[str, Any], cli_level: Optional[str]) -> None:
    level = cli_level or config.get("LOG_LEVEL")
    if level:
        log_utils.set_log_level(level)
    if config.get("LOG_DIR"):
        log_utils.add_file_logging(Path(config["LOG_DIR"]).expanduser(), level or "INFO")


def _report_exit_code(report: PassReport) -> int:
    if report.skipped:
        log_utils.logger.warning("Another reconciliation pass is running")
        return 1
    return 0 if report.ok else 1


def _cmd_sync(runtime: Runtime, args: argparse.Namespace) -> int:
    return _report_exit_code(runtime.reconciler.run_pass())


def _cmd_list(runtime: Runtime, args: argparse.Namespace) -> int:
    if args.latest:
        view = runtime.catalog.get_latest_versions(args.tag)
    else:
        view = runtime.catalog.get_all_versions(args.tag)
    if view is None:
        log_utils.logger.error(f"Unknown tag: {args.tag}")
        return 1
    _print_json(view)
    return 0


def _cmd_upload(runtime: Runtime, args: argparse.Namespace) -> int:
    try:
        with open(args.file, "rb") as f:
            file_bytes = f.read()
    except OSError as e:
        log_utils.logger.error(f"Could not read {args.file}: {e}")
        return 1

    actions = runtime.uploads.submit(
        UploadSubmission(
            file_bytes=file_bytes,
            filename=os.path.basename(args.file),
            tag=args.tag,
            token=args.token,
            canary_percent=args.canary,
            variant_restriction=args.restrict,
        )
    )
    _print_json(actions)
    return 0


def _cmd_serve(runtime: Runtime, args: argparse.Namespace) -> int:
    scheduler = PassScheduler(runtime.reconciler.run_pass, runtime.config["SYNC_HOURS"])
    scheduler.start(run_at_startup=not args.no_startup_pass)
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        log_utils.logger.info("Interrupted, shutting down")
    finally:
        scheduler.stop()
    return 0


def _cmd_verify(runtime: Runtime, args: argparse.Namespace) -> int:
    issues = runtime.catalog.verify()
    for issue in issues:
        print(f"{issue.tag}\t{issue.variant_kind}\t{issue.reason}\t{issue.storage_url}")
    return 1 if issues else 0


def _cmd_stats(runtime: Runtime, args: argparse.Namespace) -> int:
    _print_json(runtime.catalog.stats())
    return 0


COMMANDS = {
    "sync": _cmd_sync,
    "list": _cmd_list,
    "upload": _cmd_upload,
    "serve": _cmd_serve,
    "verify": _cmd_verify,
    "stats": _cmd_stats,
}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=DISTRIBUTION_NAME,
        description="mods-loader - mod catalog synchronization and versioning",
    )
    parser.add_argument("--config", metavar="PATH", help="Path to the YAML configuration file")
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("sync", help="Run one reconciliation pass")

    list_parser = subparsers.add_parser("list", help="Print the catalog as JSON")
    list_parser.add_argument("tag", nargs="?", help="Only print this tag")
    list_parser.add_argument(
        "--latest", action="store_true", help="Only the latest record per variant"
    )

    upload_parser = subparsers.add_parser(
        "upload", help="Upload an artifact for a tag without an upstream source"
    )
    upload_parser.add_argument("file", help="Path to the .mtmod or .wotmod file")
    upload_parser.add_argument("--tag", required=True, help="Catalog tag to upload for")
    upload_parser.add_argument("--token", required=True, help="Upload token for the tag")
    upload_parser.add_argument("--canary", type=float, help="Canary rollout percent (0-100)")
    upload_parser.add_argument(
        "--restrict",
        choices=sorted(RESTRICTION_TO_VARIANT),
        help="Only store the artifact for one variant",
    )

    serve_parser = subparsers.add_parser(
        "serve", help="Run passes at startup and on schedule until interrupted"
    )
    serve_parser.add_argument(
        "--no-startup-pass", action="store_true", help="Skip the pass at startup"
    )

    subparsers.add_parser("verify", help="Check stored blobs against their content hashes")
    subparsers.add_parser("stats", help="Print catalog statistics")
    subparsers.add_parser("version", help="Display mods-loader version")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the mods-loader command-line interface.

    Loads the configuration, wires the catalog services and dispatches the
    selected subcommand. Exits with status 1 on configuration, validation or
    pass failures.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "version":
        print(f"{DISTRIBUTION_NAME} {get_version()}")
        return

    try:
        config = load_config(args.config)
        _configure_logging(config, args.log_level)
        runtime = build_runtime(config)
    except ModsLoaderError as e:
        log_utils.logger.error(str(e))
        sys.exit(1)

    try:
        exit_code = COMMANDS[args.command](runtime, args)
    except ModsLoaderError as e:
        log_utils.logger.error(f"{type(e).__name__}: {e}")
        exit_code = 1
    finally:
        runtime.close()

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
