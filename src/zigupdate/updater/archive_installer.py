from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path

import requests

from zigupdate.common.config import InstallPaths, RuntimeConfig
from zigupdate.common.errors import ExternalToolError, FilesystemError, IntegrityError
from zigupdate.common.http_session import build_session
from zigupdate.common.trust import validate_trusted_url
from zigupdate.common.types import Archive
from zigupdate.updater.integrity import verify_archive
from zigupdate.updater.toolchain_service import ToolchainService


log = logging.getLogger(__name__)


def _format_bytes(value: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    amount = float(value)
    idx = 0
    while amount >= 1024.0 and idx < len(units) - 1:
        amount /= 1024.0
        idx += 1
    return f"{amount:.1f}{units[idx]}"


class ArchiveInstaller:
    """Download, unpack, activate and remove toolchain archives under one directory."""

    def __init__(
        self,
        paths: InstallPaths,
        runtime: RuntimeConfig,
        toolchain: ToolchainService | None = None,
        session: requests.Session | None = None,
    ):
        self.paths = paths
        self.runtime = runtime
        self.toolchain = toolchain if toolchain is not None else ToolchainService(runtime)
        self.session = session if session is not None else build_session(runtime)

    def _read_existing(self, path: Path) -> bytes | None:
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            log.warning("Could not read %s: %s", path, exc)
            return None

    def _fetch(self, archive: Archive) -> bytes:
        validate_trusted_url(
            archive.url,
            self.runtime.trusted_hosts,
            allow_http=self.runtime.allow_insecure_http,
        )
        log.info("Downloading archive: %s", archive.url)
        buffer = bytearray()
        last_emitted = 0
        emit_threshold = max(16 * 1024 * 1024, self.runtime.download_chunk_size * 4)
        with self.session.get(archive.url, stream=True, timeout=self.runtime.timeout) as resp:
            resp.raise_for_status()
            for chunk in resp.iter_content(chunk_size=self.runtime.download_chunk_size):
                if not chunk:
                    continue
                buffer.extend(chunk)
                if (len(buffer) - last_emitted) >= emit_threshold:
                    log.info("Downloaded %s / %s", _format_bytes(len(buffer)), _format_bytes(archive.size))
                    last_emitted = len(buffer)
        data = bytes(buffer)
        if not verify_archive(archive, data, verbose=True):
            raise IntegrityError(f"Downloaded archive failed verification: {archive.url}")
        return data

    def save(self, archive: Archive) -> Path:
        destination = self.paths.archive_file(archive)
        existing = self._read_existing(destination)
        if existing is not None and verify_archive(archive, existing, verbose=True):
            log.info("Archive already downloaded: %s", destination)
            return destination

        data = self._fetch(archive)
        tmp = destination.with_name(destination.name + ".part")
        try:
            tmp.write_bytes(data)
            tmp.replace(destination)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise FilesystemError(f"Could not write {destination}: {exc}") from exc
        log.info("Saved archive: %s (%s)", destination, _format_bytes(len(data)))
        return destination

    def unpack(self, archive: Archive) -> Path:
        target = self.paths.archive_dir(archive)
        if target.is_dir():
            log.info("Archive already unpacked: %s", target)
            return target

        cmd = [*archive.unpack_command, archive.file_name]
        cmd_string = shlex.join(cmd)
        log.info("Unpacking archive: %s", self.paths.archive_file(archive))
        log.info("Running: %s", cmd_string)
        try:
            completed = subprocess.run(cmd, cwd=str(self.paths.root), check=False, shell=False)
        except OSError as exc:
            raise ExternalToolError(f"error running: {cmd_string}: {exc}") from exc
        if completed.returncode != 0:
            raise ExternalToolError(f"error running: {cmd_string} (exit code {completed.returncode})")
        return target

    def update(self, archive: Archive) -> Path:
        self.save(archive)
        return self.unpack(archive)

    def current_target(self) -> str | None:
        link = self.paths.current_link
        if not link.is_symlink():
            return None
        return os.readlink(link)

    def activate(self, archive: Archive) -> Path:
        link = self.paths.current_link
        if self.current_target() == archive.dir_name:
            log.info("Version already set to %s", archive.version)
        else:
            log.info("Setting version to %s", archive.version)

        # The link is written under a temporary name and renamed over
        # `current`, so `current` is never missing or half-written.
        tmp = self.paths.root / f"{archive.dir_name}.{link.name}"
        try:
            if tmp.is_symlink():
                tmp.unlink()
            os.symlink(archive.dir_name, tmp, target_is_directory=True)
            os.replace(tmp, link)
        except OSError as exc:
            raise FilesystemError(f"Could not point {link} at {archive.dir_name}: {exc}") from exc
        return link

    def check_on_path(self) -> bool:
        link = self.paths.current_link
        exe_name = "zig.exe" if os.name == "nt" else "zig"
        expected = os.path.realpath(link / exe_name)
        zig_env = self.toolchain.zig_env()
        if zig_env is not None and os.path.realpath(zig_env.zig_exe) == expected:
            log.debug("zig on PATH resolves to %s", expected)
            return True
        current_dir = link.absolute()
        log.info(
            "Add the zig dir to $PATH: %s\nor put the zig binary in a dir on $PATH: %s",
            current_dir,
            current_dir / exe_name,
        )
        return False

    def install(self, archive: Archive) -> Path:
        self.update(archive)
        link = self.activate(archive)
        self.check_on_path()
        return link

    def remove(self, archive: Archive) -> None:
        target = self.paths.archive_dir(archive)
        file_path = self.paths.archive_file(archive)
        was_current = self.current_target() == archive.dir_name
        try:
            shutil.rmtree(target)
            file_path.unlink()
        except OSError as exc:
            raise FilesystemError(f"Could not remove {archive.version}: {exc}") from exc
        log.info("Removed %s and %s", target, file_path)
        if was_current:
            log.warning("%s now points at a removed version", self.paths.current_link)
