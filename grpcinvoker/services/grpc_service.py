# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/services/grpc_service.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

gRPC Service

Async entry point to the invoker. Every operation runs the blocking engine
on a worker thread. Invoker errors (dialing, discovery, selection, decoding)
propagate unchanged; anything else is logged and wrapped in
``GrpcServiceError``.
"""

# Standard
import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

# Third-Party
import orjson

# First-Party
from grpcinvoker.errors import GrpcInvokerError
from grpcinvoker.models import InvocationRequest, InvocationResult
from grpcinvoker.schemas import MethodSchema, SymbolDescription
from grpcinvoker.services.invoker import Invoker
from grpcinvoker.services.logging_service import LoggingService

# Initialize logging
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

T = TypeVar("T")


class GrpcServiceError(Exception):
    """Raised when an operation fails for a reason the invoker does not classify."""


class GrpcService:
    """Async gRPC invocation service.

    Examples:
        >>> import asyncio
        >>> from unittest.mock import MagicMock
        >>> invoker = MagicMock()
        >>> invoker.list_services.return_value = ["user.User"]
        >>> asyncio.run(GrpcService(invoker).list_services("127.0.0.1:40061"))
        ['user.User']
    """

    def __init__(self, invoker: Optional[Invoker] = None):
        """Initialize the service.

        Args:
            invoker: Invoker to delegate to, defaults to one over the shared cache
        """
        self.invoker = invoker or Invoker()

    async def _run(self, action: str, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking invoker call on a worker thread.

        Args:
            action: What is being done, for log and error messages
            func: Blocking callable
            *args: Arguments for ``func``

        Returns:
            The callable's result

        Raises:
            GrpcInvokerError: Unchanged from the invoker
            GrpcServiceError: For any other failure
        """
        try:
            return await asyncio.to_thread(func, *args)
        except GrpcInvokerError:
            raise
        except Exception as e:
            logger.error(f"Failed to {action}: {e}")
            raise GrpcServiceError(f"Failed to {action}: {e}") from e

    async def invoke(self, request: InvocationRequest) -> InvocationResult:
        """Invoke a method.

        Args:
            request: The call to make

        Returns:
            InvocationResult: Outcome of the call
        """
        return await self._run(f"invoke {request.method} on {request.host}", self.invoker.invoke, request)

    async def invoke_method(
        self,
        host: str,
        method: str,
        request_data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None,
        metadata: Sequence[Tuple[str, str]] = (),
        timeout_seconds: float = 0.0,
    ) -> InvocationResult:
        """Invoke a method with a request given as JSON-compatible data.

        Args:
            host: Target address
            method: Fully-qualified method name
            request_data: Request message, or a list of them for client streaming
            metadata: Call metadata
            timeout_seconds: Call deadline; zero or negative means none

        Returns:
            InvocationResult: Outcome of the call
        """
        request = InvocationRequest(
            host=host,
            method=method,
            metadata=tuple(metadata),
            timeout_seconds=timeout_seconds,
            body=orjson.dumps(request_data if request_data is not None else {}),
        )
        return await self.invoke(request)

    async def list_services(self, host: str) -> List[str]:
        """List the services of a host.

        Args:
            host: Target address

        Returns:
            List[str]: Service names
        """
        return await self._run(f"list services of {host}", self.invoker.list_services, host)

    async def list_methods(self, host: str, service: str) -> List[str]:
        """List the methods of a service.

        Args:
            host: Target address
            service: Fully-qualified service name

        Returns:
            List[str]: Method names
        """
        return await self._run(f"list methods of {service} on {host}", self.invoker.list_methods, host, service)

    async def describe(self, host: str, symbol: str) -> SymbolDescription:
        """Describe a symbol.

        Args:
            host: Target address
            symbol: Fully-qualified symbol name

        Returns:
            SymbolDescription: The description
        """
        return await self._run(f"describe {symbol} on {host}", self.invoker.describe, host, symbol)

    async def get_request_schema(self, host: str, service: str, method: str) -> MethodSchema:
        """Describe the request of a method.

        Args:
            host: Target address
            service: Fully-qualified service name
            method: Method name

        Returns:
            MethodSchema: Request schema
        """
        return await self._run(f"describe request of {service}.{method} on {host}", self.invoker.get_request_schema, host, service, method)

    async def register_protoset(self, host: str, name: str, data: bytes) -> None:
        """Use an uploaded protoset as the static fallback for a host.

        Args:
            host: Target address
            name: File name of the upload
            data: Serialized ``FileDescriptorSet``
        """
        await self._run(f"register protoset {name} for {host}", self.invoker.cache.register_protoset, host, name, data)
        logger.info(f"Registered protoset {name} for {host}")

    async def reset(self, host: str) -> None:
        """Forget a host's connection and descriptors.

        Args:
            host: Target address
        """
        await self._run(f"reset {host}", self.invoker.reset, host)

    async def shutdown(self) -> None:
        """Close every cached connection."""
        await self._run("close cached connections", self.invoker.cache.close)
        logger.info("gRPC service shutdown complete")
