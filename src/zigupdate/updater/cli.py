from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

import requests

from zigupdate.common.config import InstallPaths, RuntimeConfig
from zigupdate.common.errors import ZigUpdateError
from zigupdate.common.logging_utils import configure_logging
from zigupdate.updater.archive_installer import ArchiveInstaller
from zigupdate.updater.manifest_service import ManifestService
from zigupdate.updater.resolver import LATEST, resolve_archive
from zigupdate.updater.toolchain_service import ToolchainService


log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zig-update",
        description="Download, unpack and activate a Zig toolchain release.",
    )
    parser.add_argument("version", nargs="?", default=None, help="Release to install (default: latest).")
    parser.add_argument(
        "--version",
        dest="version_option",
        default=None,
        metavar="VERSION",
        help="Release to install, as an option.",
    )
    parser.add_argument("--dir", type=Path, default=None, help="Install directory (default: $ZIGUP_DIR or ~/.zig).")
    parser.add_argument(
        "--no-set",
        dest="set_current",
        action="store_false",
        help="Download and unpack only; leave the current symlink alone.",
    )
    parser.add_argument(
        "--remove",
        "--rm",
        "--delete",
        dest="remove",
        action="store_true",
        help="Remove the archive and unpacked directory of the version instead.",
    )
    parser.add_argument("--log-level", default="INFO", help="Log level.")
    return parser


def run(args: argparse.Namespace, paths: InstallPaths, runtime: RuntimeConfig) -> None:
    paths.ensure_layout()
    log.info("Using install directory %s", paths.root)

    releases = ManifestService(runtime).fetch_manifest()
    toolchain = ToolchainService(runtime)
    platform = toolchain.detect_platform()
    archive = resolve_archive(releases, args.version, platform)
    release = releases[archive.version]
    log.info("Selected zig %s (%s) released %s", archive.version, archive.platform, release.meta.date.isoformat())

    installer = ArchiveInstaller(paths, runtime, toolchain=toolchain)
    if args.remove:
        installer.remove(archive)
    elif args.set_current:
        installer.install(archive)
        if release.meta.notes:
            log.info("Release notes: %s", release.meta.notes)
    else:
        installer.update(archive)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.version and args.version_option and args.version != args.version_option:
        parser.error(f"conflicting versions: {args.version} and --version {args.version_option}")
    args.version = args.version_option or args.version or LATEST

    log_dir = os.environ.get("ZIGUP_LOG_DIR", "").strip()
    configure_logging(args.log_level, log_dir=Path(log_dir) if log_dir else None)

    paths = InstallPaths(root=args.dir.expanduser()) if args.dir is not None else InstallPaths.default()
    try:
        runtime = RuntimeConfig.from_env()
        run(args, paths, runtime)
    except (ZigUpdateError, requests.RequestException) as exc:
        log.error("%s", exc)
        return 1
    return 0
