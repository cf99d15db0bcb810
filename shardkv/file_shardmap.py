"""A shard map loaded from a JSON file and kept in sync with it."""

from __future__ import annotations

import logging
import os
import threading

from shardkv.shardmap import ShardMap, ShardMapState

logger = logging.getLogger(__name__)


def load_shard_map_state(filename) -> ShardMapState:
    """Read and parse a shard map JSON file.

    Raises ``OSError`` if the file cannot be read and ``ValueError`` if it
    cannot be parsed.
    """
    try:
        with open(filename, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        logger.error("failed to read shardmap file %s: %s", filename, exc)
        raise
    try:
        return ShardMapState.from_json(data)
    except ValueError as exc:
        logger.error("failed to parse shardmap file %s: %s", filename, exc)
        raise


class FileShardMap:
    """A :class:`ShardMap` backed by a file that is polled for changes.

    After the initial load, failures to read or parse the file are logged and
    the last good state stays in use. Call :meth:`shutdown` to stop watching.
    """

    def __init__(self, filename, poll_interval: float = 0.1) -> None:
        self.filename = os.fspath(filename)
        self.poll_interval = poll_interval
        self._signature = self._file_signature()
        self.shard_map = ShardMap(load_shard_map_state(self.filename))
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._watch, name=f"shardmap-watch:{self.filename}", daemon=True
        )
        self._thread.start()

    def _file_signature(self):
        try:
            info = os.stat(self.filename)
        except OSError:
            return None
        return (info.st_mtime_ns, info.st_size, info.st_ino)

    def reload(self) -> None:
        """Read the file now and apply its contents to the shard map."""
        self.shard_map.update(load_shard_map_state(self.filename))

    def _watch(self) -> None:
        while not self._stop.wait(self.poll_interval):
            signature = self._file_signature()
            if signature == self._signature:
                continue
            self._signature = signature
            if signature is None:
                logger.debug("shardmap file %s disappeared; keeping last state", self.filename)
                continue
            logger.debug("shard map updated from %s", self.filename)
            try:
                self.reload()
            except (OSError, ValueError):
                logger.warning("failed to apply shardmap update -- using old shardmap value")
        logger.debug("done watching shardmap file: %s", self.filename)

    def shutdown(self) -> None:
        """Stop watching the file."""
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join()

    def __enter__(self) -> FileShardMap:
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()


def watch_shard_map_file(filename) -> FileShardMap:
    """Load ``filename`` as a shard map and watch it for updates."""
    return FileShardMap(filename)