"""Watching directories and passing file changes to file groups."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Iterable

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .filegroup import EventOp, FileEvent, FileGroup

__all__ = ["FileMonitorError", "FileMonitor"]

_log = logging.getLogger(__name__)


class FileMonitorError(Exception):
    """Raised when the monitor cannot carry out a request."""


def _convert(event: FileSystemEvent) -> list[FileEvent]:
    src = os.fsdecode(event.src_path)
    kind = event.event_type
    if kind == EVENT_TYPE_CREATED:
        return [FileEvent(src, EventOp.CREATE)]
    if kind == EVENT_TYPE_MODIFIED:
        return [] if event.is_directory else [FileEvent(src, EventOp.WRITE)]
    if kind == EVENT_TYPE_DELETED:
        return [FileEvent(src, EventOp.REMOVE)]
    if kind == EVENT_TYPE_MOVED:
        events = [FileEvent(src, EventOp.RENAME)]
        dest = getattr(event, "dest_path", "")
        if dest:
            events.append(FileEvent(os.fsdecode(dest), EventOp.CREATE))
        return events
    return []


class _Handler(FileSystemEventHandler):
    def __init__(self, monitor: FileMonitor) -> None:
        super().__init__()
        self._monitor = monitor

    def dispatch(self, event: FileSystemEvent) -> None:
        for file_event in _convert(event):
            self._monitor._process(file_event)


class FileMonitor:
    """Watches the directories of several file groups and forwards changes."""

    def __init__(self) -> None:
        self._groups: dict[str, FileGroup] = {}
        self._watch_dirs: dict[str, Any] = {}
        self._blacklist: list[str] = []
        self._lock = threading.RLock()
        self._state_lock = threading.RLock()
        self._observer: Any = None
        self._running = False
        self._handler = _Handler(self)

    def set_blacklist(self, blacklist: Iterable[str]) -> None:
        """Never watch directories whose path contains one of these strings."""
        with self._lock:
            self._blacklist = list(blacklist)

    def add_group(self, group: FileGroup) -> None:
        """Add ``group``, watching its directories at once if running."""
        if group is None:
            raise FileMonitorError("group cannot be nil")
        running = self.is_running()
        with self._lock:
            if group.group_id in self._groups:
                raise FileMonitorError(f"group with ID '{group.group_id}' already exists")
            self._groups[group.group_id] = group
        if running:
            try:
                self._setup_watch_for_group(group)
            except FileMonitorError:
                with self._lock:
                    self._groups.pop(group.group_id, None)
                raise

    def create_group(
        self,
        group_id: str,
        root_dir: str,
        pattern: str,
        blacklist: Iterable[str] | None = None,
    ) -> FileGroup:
        """Build a :class:`FileGroup`, add it and return it."""
        group = FileGroup(group_id, root_dir, pattern, blacklist)
        self.add_group(group)
        return group

    def remove_group(self, group_id: str) -> None:
        """Remove the group with ``group_id``."""
        with self._lock:
            if group_id not in self._groups:
                raise FileMonitorError(f"group with ID '{group_id}' does not exist")
            del self._groups[group_id]

    def get_groups(self) -> list[FileGroup]:
        """Return all groups."""
        with self._lock:
            return list(self._groups.values())

    def get_group(self, group_id: str) -> FileGroup | None:
        """Return the group with ``group_id``, or ``None``."""
        with self._lock:
            return self._groups.get(group_id)

    def start(self) -> None:
        """Start watching the directories of every group."""
        with self._state_lock:
            if self._running:
                raise FileMonitorError("file monitor is already running")
            observer = Observer()
            try:
                observer.start()
            except Exception as exc:
                raise FileMonitorError(f"failed to create watcher: {exc}") from exc
            self._observer = observer
            with self._lock:
                groups = list(self._groups.values())
                self._watch_dirs = {}
            self._running = True

        for group in groups:
            try:
                self._setup_watch_for_group(group)
            except FileMonitorError as exc:
                with self._state_lock:
                    self._running = False
                    self._observer = None
                observer.stop()
                observer.join()
                raise FileMonitorError(
                    f"failed to setup watch for group '{group.group_id}': {exc}"
                ) from exc

    def stop(self) -> None:
        """Stop watching."""
        with self._state_lock:
            if not self._running:
                raise FileMonitorError("file monitor is not running")
            observer = self._observer
            self._running = False
        if observer is not None:
            observer.stop()
            observer.join()
            with self._state_lock:
                self._observer = None

    def is_running(self) -> bool:
        """Return whether the monitor is watching."""
        with self._state_lock:
            return self._running

    def refresh_watches(self) -> None:
        """Watch the directories that now hold matching files, and drop the rest."""
        if not self.is_running():
            raise FileMonitorError("file monitor is not running")
        with self._lock:
            groups = list(self._groups.values())
            old_dirs = self._watch_dirs
            self._watch_dirs = {}

        for group in groups:
            try:
                self._setup_watch_for_group(group)
            except FileMonitorError as exc:
                raise FileMonitorError(
                    f"failed to refresh watches for group '{group.group_id}': {exc}"
                ) from exc

        observer = self._observer
        for directory, watch in old_dirs.items():
            with self._lock:
                still_watched = directory in self._watch_dirs
            if still_watched or observer is None:
                continue
            try:
                observer.unschedule(watch)
            except (KeyError, ValueError, OSError):
                pass
            _log.debug("Removed watch for directory %s", directory)

    def _add_watch_dir(self, directory: str) -> None:
        with self._lock:
            if any(pattern in directory for pattern in self._blacklist):
                _log.debug("Skipping blacklisted directory %s", directory)
                return
            if directory in self._watch_dirs:
                return
        observer = self._observer
        if observer is None:
            raise FileMonitorError("file monitor is not running")
        if not os.path.isdir(directory):
            raise FileMonitorError(f"failed to watch directory '{directory}': not a directory")
        try:
            watch = observer.schedule(self._handler, directory, recursive=False)
        except OSError as exc:
            raise FileMonitorError(f"failed to watch directory '{directory}': {exc}") from exc
        with self._lock:
            self._watch_dirs[directory] = watch

    def _setup_watch_for_group(self, group: FileGroup) -> None:
        if not self.is_running():
            raise FileMonitorError("file monitor is not running")
        matching_dirs = group.list_matching_directories()
        self._add_watch_dir(os.path.normpath(group.root_dir))
        for directory in sorted(matching_dirs):
            self._add_watch_dir(directory)

    def _process(self, event: FileEvent) -> None:
        if not self.is_running():
            return
        if os.path.isdir(event.name) and event.op & (EventOp.CREATE | EventOp.RENAME):
            try:
                self._add_watch_dir(event.name)
            except FileMonitorError as exc:
                _log.error("Error watching new directory %s: %s", event.name, exc)
            return

        if event.op & (EventOp.CREATE | EventOp.WRITE):
            with self._lock:
                should_watch = any(group.match(event.name) for group in self._groups.values())
            if should_watch:
                directory = os.path.dirname(event.name)
                try:
                    self._add_watch_dir(directory)
                except FileMonitorError as exc:
                    _log.error("Error watching directory of matching file %s: %s", directory, exc)

        for group in self.get_groups():
            group.handle_event(event)