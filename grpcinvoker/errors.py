# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/errors.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

gRPC invoker errors.

Local failures (connecting, discovering, configuring, encoding) are raised
as the exceptions below. A call the server answered with a non-OK status is
not an error here; it is reported through ``InvocationResult.error``.
"""

# Standard
from typing import Iterable, List, Optional


class GrpcInvokerError(Exception):
    """Base class for gRPC invoker errors."""


class DialError(GrpcInvokerError):
    """Raised when a connection to the target cannot be established."""

    def __init__(self, address: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        """Initialize the DialError.

        Args:
            address: Target that could not be reached
            cause: Most diagnostic underlying error, when one was observed
            message: Optional message overriding the one derived from ``cause``
        """
        self.address = address
        self.cause = cause
        if message is None:
            message = f"failed to dial target {address}: {cause}" if cause is not None else f"failed to dial target {address}"
        super().__init__(message)


class DiscoveryError(GrpcInvokerError):
    """Raised when the server's descriptors cannot be obtained."""


class SymbolNotFoundError(DiscoveryError, KeyError):
    """Raised when a descriptor source does not know a symbol."""

    def __init__(self, symbol: str):
        """Initialize the SymbolNotFoundError.

        Args:
            symbol: Fully-qualified name that could not be resolved
        """
        self.symbol = symbol
        super().__init__(f"symbol not found: {symbol}")

    def __str__(self) -> str:
        """Render without KeyError's quoting.

        Returns:
            str: Error message
        """
        return self.args[0]


class UnexpectedDescriptorError(DiscoveryError):
    """Raised when a symbol resolves to a different kind than required."""

    def __init__(self, symbol: str, expected: str, actual: str):
        """Initialize the UnexpectedDescriptorError.

        Args:
            symbol: Fully-qualified name of the symbol
            expected: Descriptor kind that was required
            actual: Descriptor kind that was found
        """
        self.symbol = symbol
        self.expected = expected
        self.actual = actual
        super().__init__(f"{symbol} should be a {expected} descriptor but instead is a {actual}")


class ConfigurationError(GrpcInvokerError):
    """Raised for malformed or unsatisfiable service/method selections."""


class MethodNameParseError(ConfigurationError):
    """Raised when a method name has no service/method separator."""

    def __init__(self, name: str):
        """Initialize the MethodNameParseError.

        Args:
            name: The unparseable name
        """
        self.name = name
        super().__init__(f"could not parse name into service and method names: {name!r}")


class MethodsNotFoundError(ConfigurationError):
    """Raised when configured methods are missing from the server."""

    def __init__(self, missing: Iterable[str]):
        """Initialize the MethodsNotFoundError.

        Args:
            missing: ``service/method`` names that were not found
        """
        self.missing: List[str] = sorted(missing)
        super().__init__(f"configured methods not found: {', '.join(self.missing)}")


class MethodNotFoundError(ConfigurationError):
    """Raised when the requested method is not offered by the server."""

    def __init__(self, method: str, host: Optional[str] = None):
        """Initialize the MethodNotFoundError.

        Args:
            method: Fully-qualified method name
            host: Target the lookup ran against
        """
        self.method = method
        self.host = host
        where = f" on {host}" if host else ""
        super().__init__(f"method not found{where}: {method}")


class CodecError(GrpcInvokerError):
    """Raised when a JSON document does not fit the message it must encode."""

    def __init__(self, message_type: str, reason: str):
        """Initialize the CodecError.

        Args:
            message_type: Fully-qualified message name
            reason: What went wrong
        """
        self.message_type = message_type
        self.reason = reason
        super().__init__(f"failed to decode JSON for {message_type}: {reason}")
