"""Version details of an installed application."""

from __future__ import annotations

import os
import plistlib
import re
import sys
from dataclasses import dataclass

__all__ = ["AppInfo", "INFO_FILE", "load_app_info"]

INFO_FILE = "Info.plist"

_INT_RE = re.compile(r"[+-]?[0-9]+")


@dataclass
class AppInfo:
    """Version and vendor details read from an application's files."""

    file_path: str
    company_name: str = ""
    file_description: str = ""
    version: int = 0
    full_version: str = ""
    legal_copyright: str = ""
    product_name: str = ""
    product_version: str = ""


def _major(full_version: str) -> int:
    head = full_version.split(".")[0]
    return int(head) if _INT_RE.fullmatch(head) else 0


def _plist_path(file_path: str) -> str:
    parts = [part for part in file_path.split("/")[:-2] if part]
    return "/" + os.path.normpath("/".join([*parts, INFO_FILE])).replace(os.sep, "/")


def _plist_string(values: dict, name: str) -> str:
    value = values.get(name, "")
    if not isinstance(value, str):
        raise ValueError(f"{name} in {INFO_FILE} is not a string")
    return value


def _load_bundle(info: AppInfo) -> None:
    with open(_plist_path(info.file_path), "rb") as handle:
        values = plistlib.load(handle)
    if not isinstance(values, dict):
        raise ValueError(f"{INFO_FILE} does not hold a dictionary")
    info.full_version = _plist_string(values, "CFBundleShortVersionString")
    info.version = _major(info.full_version)
    info.company_name = _plist_string(values, "NSHumanReadableCopyright")


def load_app_info(file_path: str, platform: str | None = None) -> AppInfo:
    """Read version details for the executable at ``file_path``.

    On macOS (``platform`` ``"darwin"``) they come from the bundle's
    ``Info.plist`` two levels above the executable; elsewhere only the
    path is recorded.  ``platform`` defaults to ``sys.platform``.
    Raises ``OSError`` or ``ValueError`` when the plist cannot be read.
    """
    info = AppInfo(file_path=file_path)
    if (platform or sys.platform) == "darwin":
        _load_bundle(info)
    return info