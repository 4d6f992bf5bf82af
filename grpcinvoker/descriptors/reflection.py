# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/descriptors/reflection.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Reflection client.

Wraps ``grpc_reflection``'s descriptor database for one channel. The database
is backed by a ``DescriptorPool`` so every file fetched from the server is
parsed once and kept. Reflection calls go through a client interceptor that
attaches the configured reflection metadata and remembers the streams it
opened, so ``reset()`` can tear down any that are still running without
throwing the descriptor cache away.
"""

# Standard
import collections
import logging
import threading
from typing import Iterator, List, Optional, Sequence, Tuple

# Third-Party
from google.protobuf.descriptor_pool import DescriptorPool
import grpc
from grpc_reflection.v1alpha.proto_reflection_descriptor_database import ProtoReflectionDescriptorDatabase

# First-Party
from grpcinvoker.config import REFLECTION_SERVICE_NAMES
from grpcinvoker.errors import DiscoveryError
from grpcinvoker.utils.metadata import to_wire_metadata

logger = logging.getLogger(__name__)


class _ClientCallDetails(
    collections.namedtuple("_ClientCallDetails", ("method", "timeout", "metadata", "credentials", "wait_for_ready", "compression")),
    grpc.ClientCallDetails,
):
    """Mutable copy of the call details handed to interceptors."""


class _ReflectionStreamInterceptor(grpc.StreamStreamClientInterceptor):
    """Adds reflection metadata and keeps track of open reflection streams."""

    def __init__(self, metadata: Sequence[Tuple[str, str]]):
        self._metadata = to_wire_metadata(metadata)
        self._lock = threading.Lock()
        self._calls: List[grpc.Call] = []

    def intercept_stream_stream(self, continuation, client_call_details, request_iterator):
        metadata = tuple(client_call_details.metadata or ()) + self._metadata
        details = _ClientCallDetails(
            client_call_details.method,
            client_call_details.timeout,
            metadata,
            client_call_details.credentials,
            getattr(client_call_details, "wait_for_ready", None),
            getattr(client_call_details, "compression", None),
        )
        call = continuation(details, request_iterator)
        with self._lock:
            self._calls = [c for c in self._calls if c.is_active()]
            self._calls.append(call)
        return call

    def cancel_active(self) -> int:
        """Cancel every reflection stream that has not finished.

        Returns:
            int: Number of streams cancelled
        """
        with self._lock:
            calls, self._calls = self._calls, []
        cancelled = 0
        for call in calls:
            if call.is_active():
                call.cancel()
                cancelled += 1
        return cancelled


class ReflectionClient:
    """Reflection-backed descriptor database and pool for one channel.

    Examples:
        >>> from unittest.mock import MagicMock
        >>> client = ReflectionClient(MagicMock())
        >>> client.reset()
        0
    """

    def __init__(self, channel: grpc.Channel, metadata: Sequence[Tuple[str, str]] = ()):
        """Initialize the client.

        Args:
            channel: Connected channel to the target server
            metadata: Extra metadata sent with each reflection request
        """
        self._interceptor = _ReflectionStreamInterceptor(metadata)
        self._channel = grpc.intercept_channel(channel, self._interceptor)
        self._lock = threading.Lock()
        self._database: Optional[ProtoReflectionDescriptorDatabase] = None
        self._pool: Optional[DescriptorPool] = None

    @property
    def database(self) -> ProtoReflectionDescriptorDatabase:
        """Reflection descriptor database, created on first use."""
        with self._lock:
            if self._database is None:
                self._database = ProtoReflectionDescriptorDatabase(self._channel)
            return self._database

    @property
    def pool(self) -> DescriptorPool:
        """Descriptor pool that loads missing files through reflection."""
        database = self.database
        with self._lock:
            if self._pool is None:
                self._pool = DescriptorPool(database)
            return self._pool

    def list_services(self) -> List[str]:
        """Ask the server for the services it exposes.

        Returns:
            List[str]: Service names, reflection services excluded

        Raises:
            DiscoveryError: If the reflection request fails
        """
        try:
            services = list(self.database.get_services())
        except grpc.RpcError as e:
            raise DiscoveryError(f"failed to list services: {_describe_rpc_error(e)}") from e
        return [s for s in services if s not in REFLECTION_SERVICE_NAMES]

    def all_extension_numbers(self, type_name: str) -> Iterator[int]:
        """Ask the server for the extension numbers of a message type.

        Args:
            type_name: Fully-qualified message name

        Returns:
            Iterator[int]: Extension field numbers

        Raises:
            KeyError: If the server does not know the type
            DiscoveryError: If the reflection request fails
        """
        try:
            return iter(list(self.database.FindAllExtensionNumbers(type_name)))
        except grpc.RpcError as e:
            raise DiscoveryError(f"failed to list extensions of {type_name}: {_describe_rpc_error(e)}") from e

    def reset(self) -> int:
        """Release reflection streams that are still open.

        Descriptors already fetched stay cached.

        Returns:
            int: Number of streams that had to be cancelled
        """
        cancelled = self._interceptor.cancel_active()
        if cancelled:
            logger.debug(f"Cancelled {cancelled} open reflection stream(s)")
        return cancelled


def _describe_rpc_error(error: grpc.RpcError) -> str:
    """Render an RpcError for messages.

    Args:
        error: Error raised by a gRPC call

    Returns:
        str: ``CODE: details`` when available
    """
    code = getattr(error, "code", None)
    details = getattr(error, "details", None)
    if callable(code) and callable(details):
        return f"{code().name}: {details()}"
    return str(error)
