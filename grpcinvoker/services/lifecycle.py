# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/services/lifecycle.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Resource lifecycle management.

Opens the reflection client for a connection and tears resources down within
a fixed grace period. Teardown runs on background threads; if it has not
finished when the grace period ends, the manager logs a warning and returns
while the teardown keeps running on its own.

Examples:
    >>> manager = ResourceLifecycleManager(grace_period=0.5, scratch_dir="/tmp/grpcinvoker-doctest/")
    >>> manager.close_discovery()
    True
"""

# Standard
import logging
import os
import shutil
import threading
from typing import Callable, List, Optional, Sequence, Tuple

# Third-Party
import grpc

# First-Party
from grpcinvoker.config import settings
from grpcinvoker.descriptors.reflection import ReflectionClient
from grpcinvoker.descriptors.source import CompositeDescriptorSource, DescriptorSource, FileDescriptorSource, ReflectionDescriptorSource

logger = logging.getLogger(__name__)


def run_bounded(tasks: Sequence[Callable[[], None]], timeout: float, label: str) -> bool:
    """Run teardown tasks concurrently and wait for them up to a deadline.

    Failures inside a task are logged. Tasks still running at the deadline
    are left running.

    Args:
        tasks: Callables to run, each on its own daemon thread
        timeout: Seconds to wait for all of them
        label: What is being closed, for log messages

    Returns:
        bool: True if every task finished in time

    Examples:
        >>> run_bounded([lambda: None, lambda: None], 1.0, "nothing")
        True
        >>> import time
        >>> run_bounded([lambda: time.sleep(0.5)], 0.01, "slow thing")
        False
    """

    def guarded(task: Callable[[], None]) -> Callable[[], None]:
        def run() -> None:
            try:
                task()
            except Exception as e:
                logger.error(f"Error closing {label}: {e}")

        return run

    threads: List[threading.Thread] = [threading.Thread(target=guarded(task), name=f"grpcinvoker-close-{label}", daemon=True) for task in tasks]
    for thread in threads:
        thread.start()

    done = threading.Event()

    def join_all() -> None:
        for thread in threads:
            thread.join()
        done.set()

    threading.Thread(target=join_all, daemon=True).start()
    if done.wait(timeout):
        return True
    logger.warning(f"{label} failed to close within {timeout}s")
    return False


class ResourceLifecycleManager:
    """Opens and closes the discovery and connection resources of one host."""

    def __init__(
        self,
        grace_period: Optional[float] = None,
        scratch_dir: Optional[str] = None,
        static_source: Optional[DescriptorSource] = None,
    ):
        """Initialize the manager.

        Args:
            grace_period: Seconds a close may take, defaults to ``settings.close_grace_period``
            scratch_dir: Directory for uploaded descriptor files, defaults to ``settings.scratch_dir``
            static_source: File-backed fallback for symbol resolution
        """
        self.grace_period = settings.close_grace_period if grace_period is None else grace_period
        self.scratch_dir = scratch_dir or settings.scratch_dir
        self.static_source = static_source
        self.connection: Optional[grpc.Channel] = None
        self.client: Optional[ReflectionClient] = None
        self._target = "connection"
        self._round_lock = threading.RLock()

    def open_discovery(self, connection: grpc.Channel, metadata: Sequence[Tuple[str, str]] = (), target: Optional[str] = None) -> CompositeDescriptorSource:
        """Create the reflection client and descriptor source for a connection.

        Args:
            connection: Ready channel
            metadata: Metadata sent with reflection requests
            target: Address of the connection, for log messages

        Returns:
            CompositeDescriptorSource: Reflection first, static files as fallback
        """
        self.connection = connection
        self._target = target or self._target
        self.client = ReflectionClient(connection, metadata)
        return CompositeDescriptorSource(ReflectionDescriptorSource(self.client), self.static_source)

    def close_discovery(self) -> bool:
        """Release the reflection client's open streams.

        Returns:
            bool: True if the reset finished within the grace period
        """
        client = self.client
        if client is None:
            return True
        return run_bounded([client.reset], self.grace_period, f"reflection {self._target}")

    def close_connection(self) -> bool:
        """Close the channel and remove scratch files.

        Returns:
            bool: True if both finished within the grace period
        """
        tasks: List[Callable[[], None]] = [self._remove_scratch_dir]
        connection, self.connection = self.connection, None
        if connection is not None:
            tasks.append(connection.close)
        return run_bounded(tasks, self.grace_period, f"connection {self._target}")

    def persist_protoset(self, name: str, data: bytes) -> FileDescriptorSource:
        """Store an uploaded protoset and use it as the static fallback.

        Args:
            name: File name of the upload
            data: Serialized ``FileDescriptorSet``

        Returns:
            FileDescriptorSource: The new static source
        """
        self.static_source = FileDescriptorSource.from_protoset_bytes(name, data, self.scratch_dir)
        return self.static_source

    def _remove_scratch_dir(self) -> None:
        if os.path.isdir(self.scratch_dir):
            shutil.rmtree(self.scratch_dir)

    def __enter__(self) -> "ResourceLifecycleManager":
        """Start a discovery round; rounds on one manager do not overlap.

        Returns:
            ResourceLifecycleManager: self
        """
        self._round_lock.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """End the discovery round and close discovery.

        Args:
            exc_type: Exception type, if any
            exc: Exception, if any
            tb: Traceback, if any
        """
        try:
            self.close_discovery()
        finally:
            self._round_lock.release()
