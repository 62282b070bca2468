"""Groups of files that share a name pattern and change callbacks."""

from __future__ import annotations

import enum
import logging
import os
import re
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

__all__ = ["EventOp", "FileEvent", "FileChangeCallback", "FileGroup"]

_log = logging.getLogger(__name__)


class EventOp(enum.Flag):
    """Kinds of change a file event reports."""

    CREATE = 1
    WRITE = 2
    REMOVE = 4
    RENAME = 8
    CHMOD = 16


@dataclass(frozen=True)
class FileEvent:
    """A change to the file at ``name``."""

    name: str
    op: EventOp


FileChangeCallback = Callable[[FileEvent], None]


def _walk_files(base: str, rel: str = "") -> Iterator[str]:
    """Yield relative paths of non-directories under ``base`` in lexical order."""
    try:
        with os.scandir(os.path.join(base, rel) if rel else base) as entries:
            ordered = sorted(entries, key=lambda entry: entry.name)
    except OSError:
        return
    for entry in ordered:
        child = os.path.join(rel, entry.name) if rel else entry.name
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            is_dir = False
        if is_dir:
            yield from _walk_files(base, child)
        else:
            yield child


class FileGroup:
    """Files under one root whose names match a pattern, with shared callbacks.

    Callbacks run on their own threads; an exception a callback raises is
    logged and otherwise ignored.
    """

    def __init__(
        self,
        group_id: str,
        root_dir: str,
        pattern: str,
        blacklist: Iterable[str] | None = None,
    ) -> None:
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"invalid pattern '{pattern}': {exc}") from exc
        self.group_id = group_id
        self.root_dir = os.path.normpath(root_dir)
        self.pattern = compiled
        self.pattern_str = pattern
        self.blacklist = list(blacklist or [])
        self._callbacks: list[FileChangeCallback] = []
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"FileGroup({self.group_id!r}, {self.root_dir!r}, {self.pattern_str!r})"

    @property
    def callbacks(self) -> list[FileChangeCallback]:
        """A copy of the registered callbacks."""
        with self._lock:
            return list(self._callbacks)

    def add_callback(self, callback: FileChangeCallback) -> None:
        """Register ``callback`` for changes to files of this group."""
        with self._lock:
            self._callbacks.append(callback)

    def remove_callback(self, callback: FileChangeCallback) -> bool:
        """Unregister ``callback``; return whether it was registered."""
        with self._lock:
            for index, registered in enumerate(self._callbacks):
                if registered is callback:
                    del self._callbacks[index]
                    return True
        return False

    def match(self, path: str) -> bool:
        """Return whether ``path`` lies under the root, matches and is not blacklisted."""
        path = os.path.normpath(path)
        if os.path.isabs(path) != os.path.isabs(self.root_dir):
            return False
        try:
            rel_path = os.path.relpath(path, self.root_dir)
        except ValueError:
            return False
        if rel_path.startswith(".."):
            return False
        if not self.pattern.search(os.path.basename(path)):
            return False
        return not any(item in rel_path for item in self.blacklist)

    def list_files(self) -> list[str]:
        """Scan the root now and return the paths of matching files."""
        files = []
        for rel in _walk_files(self.root_dir):
            full = os.path.normpath(os.path.join(self.root_dir, rel))
            if self.match(full):
                files.append(full)
        return files

    def list_matching_directories(self) -> set[str]:
        """Return the directories that hold at least one matching file."""
        return {os.path.dirname(path) for path in self.list_files()}

    def handle_event(self, event: FileEvent) -> list[threading.Thread]:
        """Run every callback for ``event`` if its file belongs to this group.

        Returns the threads the callbacks run on.
        """
        if not self.match(event.name):
            return []
        threads = []
        for callback in self.callbacks:
            thread = threading.Thread(
                target=self._run_callback, args=(callback, event), daemon=True
            )
            thread.start()
            threads.append(thread)
        return threads

    @staticmethod
    def _run_callback(callback: FileChangeCallback, event: FileEvent) -> None:
        try:
            callback(event)
        except Exception:
            _log.exception("Callback error (file=%s, op=%s)", event.name, event.op)