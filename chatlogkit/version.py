"""Version reporting."""

from __future__ import annotations

import platform
import sys

__all__ = ["VERSION", "get_more"]

VERSION = "(dev)"

_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
}


def _runtime() -> str:
    return f"python{platform.python_version()}"


def _os_name() -> str:
    return platform.system().lower() or sys.platform


def _arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_NAMES.get(machine, machine)


def _build_info() -> str:
    lines = [
        f"python\t{platform.python_version()}",
        "path\tchatlogkit",
        f"mod\tchatlogkit\t{VERSION}",
        f"build\tos={_os_name()}",
        f"build\tarch={_arch()}",
    ]
    return "\n".join(lines) + "\n"


def get_more(mod: bool) -> str:
    """Return a version line, or indented build details when ``mod`` is true."""
    if mod:
        info = _build_info()
        if info:
            return "\t" + info[:-1].replace("\n", "\n\t") + "\n"
    return f"version {VERSION} {_runtime()} {_os_name()}/{_arch()}\n"