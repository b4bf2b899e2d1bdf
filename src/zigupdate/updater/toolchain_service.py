from __future__ import annotations

import json
import logging
import platform
import shlex
import subprocess
from typing import Any

from zigupdate.common.config import RuntimeConfig
from zigupdate.common.errors import ExternalToolError
from zigupdate.common.types import Platform, ZigEnv


log = logging.getLogger(__name__)

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "i686": "x86",
    "i386": "x86",
}
_OS_ALIASES = {
    "darwin": "macos",
}


def host_platform() -> Platform:
    machine = platform.machine().strip().lower()
    system = platform.system().strip().lower()
    return Platform(arch=_ARCH_ALIASES.get(machine, machine), os=_OS_ALIASES.get(system, system))


class ToolchainService:
    def __init__(self, runtime: RuntimeConfig):
        self.runtime = runtime

    def run_json(self, args: list[str]) -> Any | None:
        """Run zig with *args* and decode its stdout as JSON.

        Returns ``None`` when the zig executable is not installed.
        """

        cmd = [self.runtime.zig_executable, *args]
        try:
            completed = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                check=False,
                shell=False,
            )
        except FileNotFoundError:
            log.debug("%s is not installed", self.runtime.zig_executable)
            return None
        except OSError as exc:
            raise ExternalToolError(f"error running: {shlex.join(cmd)}: {exc}") from exc
        if completed.returncode != 0:
            raise ExternalToolError(f"error running: {shlex.join(cmd)} (exit code {completed.returncode})")
        try:
            return json.loads(completed.stdout.decode("utf-8"))
        except ValueError as exc:
            raise ExternalToolError(f"{shlex.join(cmd)} did not print JSON: {exc}") from exc

    def detect_platform(self) -> Platform:
        targets = self.run_json(["targets"])
        if targets is None:
            host = host_platform()
            log.info("zig not found, using host platform %s", host.key)
            return host
        try:
            native = targets["native"]
            arch = str(native["cpu"]["arch"])
            os_name = str(native["os"])
        except (KeyError, TypeError) as exc:
            raise ExternalToolError(f"zig targets output has no native cpu.arch/os: {exc}") from exc
        log.debug("zig reports native platform %s-%s", arch, os_name)
        return Platform(arch=arch, os=os_name)

    def zig_env(self) -> ZigEnv | None:
        raw = self.run_json(["env"])
        if raw is None:
            return None
        try:
            return ZigEnv(
                zig_exe=str(raw["zig_exe"]),
                lib_dir=str(raw["lib_dir"]),
                std_dir=str(raw["std_dir"]),
                global_cache_dir=str(raw["global_cache_dir"]),
                version=str(raw["version"]),
            )
        except (KeyError, TypeError) as exc:
            raise ExternalToolError(f"zig env output is missing {exc}") from exc
