# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/cache/resource_cache.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Per-host Resource Cache.

Keeps one connection, descriptor source and base context per host so repeat
invocations neither redial nor rerun discovery. Cache hits only take the
shared side of a reader/writer lock. A miss goes through a per-host
single-flight lock, so concurrent callers for the same host wait for one
dial and one discovery round instead of racing; other hosts are unaffected
because the dial itself runs outside the map lock. Failures are not cached.

Examples:
    >>> from unittest.mock import MagicMock
    >>> cache = ResourceCache(dialer=MagicMock(), lifecycle_factory=lambda host: MagicMock())
    >>> cache.hosts()
    []
    >>> resource = cache.acquire("127.0.0.1:40061")
    >>> cache.acquire("127.0.0.1:40061") is resource
    True
    >>> cache.stats()["dials"]
    1
    >>> cache.invalidate()
    >>> cache.hosts()
    []
"""

# Standard
from dataclasses import dataclass, field
import logging
import os
import re
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

# Third-Party
import grpc

# First-Party
from grpcinvoker.config import settings
from grpcinvoker.descriptors.source import DescriptorSource, FileDescriptorSource
from grpcinvoker.services.lifecycle import ResourceLifecycleManager
from grpcinvoker.transport.dialer import Dialer
from grpcinvoker.utils.metadata import parse_headers
from grpcinvoker.utils.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

MetadataPairs = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class BaseContext:
    """Per-host call defaults.

    Attributes:
        metadata: Sent with calls that carry no metadata of their own
        reflection_metadata: Sent with reflection requests
    """

    metadata: MetadataPairs = field(default_factory=tuple)
    reflection_metadata: MetadataPairs = field(default_factory=tuple)

    @classmethod
    def from_settings(cls) -> "BaseContext":
        """Build the defaults from configured headers.

        Returns:
            BaseContext: The defaults
        """
        return cls(
            metadata=tuple(parse_headers(settings.default_headers)),
            reflection_metadata=tuple(parse_headers(settings.reflection_headers)),
        )


@dataclass(frozen=True)
class HostResource:
    """Everything cached for one host.

    Attributes:
        host: Address the connection was dialed with
        connection: Ready channel
        descriptor_source: Reflection first, static files as fallback
        base_context: Call defaults
        lifecycle: Closes the resources above
    """

    host: str
    connection: grpc.Channel
    descriptor_source: DescriptorSource
    base_context: BaseContext
    lifecycle: ResourceLifecycleManager


def _scratch_dir_for(host: str) -> str:
    """Return the scratch directory of one host.

    Args:
        host: Target address

    Returns:
        str: Directory under ``settings.scratch_dir``

    Examples:
        >>> _scratch_dir_for("[::1]:50051").endswith("__1__50051")
        True
    """
    return os.path.join(settings.scratch_dir, re.sub(r"[^A-Za-z0-9.-]", "_", host))


class _Flight:
    """A resource creation in progress for one host.

    Attributes:
        lock: Held by the caller doing the dial and discovery
        generation: Bumped by invalidations that land during the creation
        users: Callers currently holding a reference to this flight
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.generation = 0
        self.users = 0


class ResourceCache:
    """Thread-safe host to ``HostResource`` mapping.

    Attributes:
        dialer: Opens connections
        base_context: Call defaults applied to every host
    """

    def __init__(
        self,
        dialer: Optional[Dialer] = None,
        base_context: Optional[BaseContext] = None,
        lifecycle_factory: Optional[Callable[[str], ResourceLifecycleManager]] = None,
    ):
        """Initialize an empty cache.

        Args:
            dialer: Dialer for new connections, defaults to a plaintext ``Dialer``
            base_context: Call defaults, defaults to the configured headers
            lifecycle_factory: Builds the lifecycle manager for a host
        """
        self.dialer = dialer or Dialer()
        self.base_context = base_context or BaseContext.from_settings()
        self._lifecycle_factory = lifecycle_factory or self._default_lifecycle
        self._resources: Dict[str, HostResource] = {}
        self._lock = ReadWriteLock()
        self._flights: Dict[str, _Flight] = {}
        self._flights_lock = threading.Lock()
        self._protosets: Dict[str, Tuple[str, bytes]] = {}
        self._stats_lock = threading.Lock()
        self._hit_count = 0
        self._miss_count = 0
        self._dial_count = 0

    def _default_lifecycle(self, host: str) -> ResourceLifecycleManager:
        static_source = None
        if settings.protoset_files:
            files = [f for path in settings.protoset_files for f in FileDescriptorSource.from_protoset(path).files.values()]
            static_source = FileDescriptorSource(files)
        return ResourceLifecycleManager(scratch_dir=_scratch_dir_for(host), static_source=static_source)

    def _join_flight(self, host: str) -> _Flight:
        with self._flights_lock:
            flight = self._flights.get(host)
            if flight is None:
                flight = self._flights[host] = _Flight()
            flight.users += 1
            return flight

    def _leave_flight(self, host: str, flight: _Flight) -> None:
        with self._flights_lock:
            flight.users -= 1
            if flight.users == 0 and self._flights.get(host) is flight:
                del self._flights[host]

    def _count_hit(self) -> None:
        with self._stats_lock:
            self._hit_count += 1

    def get(self, host: str) -> Optional[HostResource]:
        """Return the cached resource for a host without creating one.

        Args:
            host: Target address

        Returns:
            Optional[HostResource]: Cached resource, if any
        """
        with self._lock.read():
            return self._resources.get(host)

    def acquire(self, host: str) -> HostResource:
        """Return the resource for a host, creating it on first use.

        A resource whose host is invalidated while it is being created is
        closed instead of cached, and creation starts over.

        Args:
            host: Target address

        Returns:
            HostResource: The shared resource

        Raises:
            DialError: If the host cannot be reached
            DiscoveryError: If the host's services cannot be listed
        """
        resource = self.get(host)
        if resource is not None:
            self._count_hit()
            return resource

        flight = self._join_flight(host)
        try:
            with flight.lock:
                while True:
                    resource = self.get(host)
                    if resource is not None:
                        self._count_hit()
                        return resource

                    with self._stats_lock:
                        self._miss_count += 1
                    with self._flights_lock:
                        generation = flight.generation
                    resource = self._create(host)
                    with self._lock.write():
                        with self._flights_lock:
                            current = flight.generation == generation
                        if current:
                            self._resources[host] = resource
                    if current:
                        logger.info(f"Cached connection to {host}")
                        return resource
                    logger.info(f"Discarding connection to {host}: invalidated while connecting")
                    resource.lifecycle.close_connection()
        finally:
            self._leave_flight(host, flight)

    def _create(self, host: str) -> HostResource:
        """Dial and discover a host.

        Args:
            host: Target address

        Returns:
            HostResource: A fresh, unpublished resource
        """
        with self._stats_lock:
            self._dial_count += 1
        connection = self.dialer.dial(host)
        lifecycle: Optional[ResourceLifecycleManager] = None
        try:
            lifecycle = self._lifecycle_factory(host)
            with self._lock.read():
                pending = self._protosets.get(host)
            if pending is not None:
                lifecycle.persist_protoset(*pending)
            source = lifecycle.open_discovery(connection, self.base_context.reflection_metadata, target=host)
            with lifecycle:
                services = source.list_services()
        except Exception:
            if lifecycle is None:
                connection.close()
            else:
                lifecycle.connection = connection
                lifecycle.close_connection()
            raise
        logger.debug(f"Discovered {len(services)} service(s) on {host}")
        return HostResource(host=host, connection=connection, descriptor_source=source, base_context=self.base_context, lifecycle=lifecycle)

    def register_protoset(self, host: str, name: str, data: bytes) -> None:
        """Use an uploaded protoset as the static fallback for a host.

        The current resource for the host is evicted; the file is written to
        the host's scratch directory when the host is next acquired.

        Args:
            host: Target address
            name: File name of the upload
            data: Serialized ``FileDescriptorSet``
        """
        with self._lock.write():
            self._protosets[host] = (name, data)
        self.invalidate(host)

    def invalidate(self, host: Optional[str] = None) -> None:
        """Evict one host or every host and close the evicted connections.

        Creations in flight for the evicted hosts are not cached.

        Args:
            host: Host to evict; None evicts everything
        """
        with self._lock.write():
            if host is not None:
                evicted: List[HostResource] = [r for r in [self._resources.pop(host, None)] if r is not None]
            else:
                evicted = list(self._resources.values())
                self._resources.clear()
            with self._flights_lock:
                for flight_host, flight in self._flights.items():
                    if host is None or flight_host == host:
                        flight.generation += 1
        for resource in evicted:
            resource.lifecycle.close_connection()
        logger.debug(f"Resource cache invalidated: {host or 'all'}")

    def hosts(self) -> List[str]:
        """List cached hosts.

        Returns:
            List[str]: Host addresses, sorted
        """
        with self._lock.read():
            return sorted(self._resources)

    def close(self) -> None:
        """Evict and close everything."""
        self.invalidate()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict[str, Any]: Hit, miss and dial counters and the cached host count
        """
        with self._lock.read():
            size = len(self._resources)
        with self._stats_lock:
            return {
                "hit_count": self._hit_count,
                "miss_count": self._miss_count,
                "dials": self._dial_count,
                "hosts": size,
            }


resource_cache = ResourceCache()
