# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/utils/rwlock.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Reader/writer lock.

Many readers may hold the lock together; a writer holds it alone. Waiting
writers block new readers so a steady stream of cache hits cannot starve a
publish.

Examples:
    >>> lock = ReadWriteLock()
    >>> with lock.read():
    ...     with lock.read():
    ...         lock.readers
    2
    >>> with lock.write():
    ...     lock.writer_active
    True
    >>> lock.readers, lock.writer_active
    (0, False)
"""

# Standard
from contextlib import contextmanager
import threading
from typing import Iterator


class ReadWriteLock:
    """Writer-preferring reader/writer lock built on a condition variable."""

    def __init__(self):
        """Initialize an unlocked lock."""
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        return self._readers

    @property
    def writer_active(self) -> bool:
        """Whether a writer currently holds the lock."""
        return self._writer

    def acquire_read(self) -> None:
        """Block until the shared side is available."""
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        """Release the shared side.

        Raises:
            RuntimeError: If no reader holds the lock
        """
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read called without a matching acquire_read")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Block until the exclusive side is available."""
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        """Release the exclusive side.

        Raises:
            RuntimeError: If no writer holds the lock
        """
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write called without a matching acquire_write")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the shared side for the duration of the block.

        Yields:
            None
        """
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the exclusive side for the duration of the block.

        Yields:
            None
        """
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
