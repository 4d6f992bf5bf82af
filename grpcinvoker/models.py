# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/models.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Core data types for the gRPC invoker.

``InvocationRequest`` is what callers hand to the engine; ``InvocationResult``
is what they get back. Remote failures travel inside the result rather than as
exceptions.

Examples:
    >>> req = InvocationRequest(host="127.0.0.1:40061", method="user.User.Login", body=b'{"UserName": "u1"}')
    >>> req.read_body()
    b'{"UserName": "u1"}'
    >>> req.metadata
    ()
    >>> InvocationResult().ok
    True
"""

# Standard
from dataclasses import dataclass, field
from enum import Enum
import io
from typing import Any, BinaryIO, List, Optional, Sequence, TextIO, Tuple, Union

# Third-Party
import orjson
from pydantic import Field

# First-Party
from grpcinvoker.utils.base_models import BaseModelWithConfigDict

MetadataPairs = Tuple[Tuple[str, str], ...]
RequestBody = Union[bytes, str, BinaryIO, TextIO]


class LogLevel(str, Enum):
    """RFC 5424 severity levels."""

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    ALERT = "alert"
    EMERGENCY = "emergency"


@dataclass(frozen=True)
class InvocationRequest:
    """A single call to make against a remote gRPC server.

    Attributes:
        host: Target address, ``host:port``
        method: Fully-qualified method name, ``package.Service.Method``
        metadata: Ordered key/value pairs; duplicates are allowed
        timeout_seconds: Call deadline in seconds; zero or negative means no deadline
        body: One JSON document holding the request message
    """

    host: str
    method: str
    metadata: MetadataPairs = field(default_factory=tuple)
    timeout_seconds: float = 0.0
    body: RequestBody = b"{}"

    def __post_init__(self) -> None:
        """Freeze the metadata into a tuple of pairs."""
        object.__setattr__(self, "metadata", tuple((str(k), str(v)) for k, v in self.metadata))

    @property
    def deadline(self) -> Optional[float]:
        """Timeout to hand to the call, or None when no deadline applies.

        Returns:
            Optional[float]: Seconds, or None

        Examples:
            >>> InvocationRequest(host="h:1", method="a.B.C", timeout_seconds=0).deadline is None
            True
            >>> InvocationRequest(host="h:1", method="a.B.C", timeout_seconds=1.5).deadline
            1.5
        """
        return self.timeout_seconds if self.timeout_seconds and self.timeout_seconds > 0 else None

    def read_body(self) -> bytes:
        """Read the whole request body.

        Returns:
            bytes: The raw JSON document
        """
        body = self.body
        if isinstance(body, bytes):
            return body
        if isinstance(body, str):
            return body.encode("utf-8")
        data = body.read()
        if isinstance(body, io.TextIOBase) or isinstance(data, str):
            return data.encode("utf-8")
        return data


class RpcMetadata(BaseModelWithConfigDict):
    """One header or trailer entry."""

    name: str
    value: str


class RpcResponse(BaseModelWithConfigDict):
    """One response message encoded as JSON."""

    data: bytes

    def as_object(self) -> Any:
        """Decode the JSON payload.

        Returns:
            Any: The decoded JSON value

        Examples:
            >>> RpcResponse(data=b'{"ID": 1}').as_object()
            {'ID': 1}
        """
        return orjson.loads(self.data)


class RpcErrorDetail(BaseModelWithConfigDict):
    """A structured detail attached to a non-OK status."""

    name: str
    detail: Any = None


class RpcErrorInfo(BaseModelWithConfigDict):
    """Terminal non-OK status of a call."""

    name: str
    code: int
    message: str = ""
    details: List[RpcErrorDetail] = Field(default_factory=list)


class InvocationResult(BaseModelWithConfigDict):
    """Outcome of one invocation.

    A call that the server rejected is still a result: ``error`` is set and
    ``responses`` holds whatever arrived before the failure.
    """

    headers: List[RpcMetadata] = Field(default_factory=list)
    responses: List[RpcResponse] = Field(default_factory=list)
    trailers: List[RpcMetadata] = Field(default_factory=list)
    error: Optional[RpcErrorInfo] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        """Whether the call finished with an OK status."""
        return self.error is None

    def header_values(self, name: str) -> Sequence[str]:
        """Return all header values for a key, compared case-insensitively.

        Args:
            name: Header name

        Returns:
            Sequence[str]: Matching values in arrival order

        Examples:
            >>> r = InvocationResult(headers=[RpcMetadata(name="username", value="u1")])
            >>> r.header_values("UserName")
            ['u1']
        """
        wanted = name.lower()
        return [h.value for h in self.headers if h.name.lower() == wanted]
