# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/utils/metadata.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Call metadata helpers.

gRPC metadata keys are case-insensitive and travel lower-cased. Keys ending
in ``-bin`` carry binary values: callers supply them base64-encoded and they
come back base64-encoded.

Examples:
    >>> parse_headers(["User: test", "x-trace-id:  abc "])
    [('User', 'test'), ('x-trace-id', 'abc')]
    >>> to_wire_metadata([("User", "test"), ("User", "again")])
    (('user', 'test'), ('user', 'again'))
    >>> to_wire_metadata([("trace-bin", "AAE=")])
    (('trace-bin', b'\\x00\\x01'),)
    >>> from_wire_metadata((("trace-bin", b"\\x00\\x01"), ("func", "Login")))
    [('trace-bin', 'AAE='), ('func', 'Login')]
"""

# Standard
import base64
import binascii
from typing import Iterable, List, Optional, Sequence, Tuple, Union

WireMetadata = Tuple[Tuple[str, Union[str, bytes]], ...]


def parse_headers(headers: Iterable[str]) -> List[Tuple[str, str]]:
    """Parse ``name: value`` strings into metadata pairs.

    Args:
        headers: Header strings

    Returns:
        List[Tuple[str, str]]: Pairs in input order

    Raises:
        ValueError: If a header has no ``:`` separator

    Examples:
        >>> parse_headers(["bad"])
        Traceback (most recent call last):
        ...
        ValueError: header must be in 'name: value' form: 'bad'
    """
    pairs = []
    for header in headers:
        name, sep, value = header.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"header must be in 'name: value' form: {header!r}")
        pairs.append((name.strip(), value.strip()))
    return pairs


def to_wire_metadata(pairs: Sequence[Tuple[str, str]]) -> WireMetadata:
    """Convert caller metadata into the form gRPC transmits.

    Args:
        pairs: Key/value pairs as supplied by the caller

    Returns:
        WireMetadata: Lower-cased keys, binary values decoded

    Raises:
        ValueError: If a ``-bin`` value is not valid base64
    """
    wire = []
    for key, value in pairs:
        key = key.strip().lower()
        if key.endswith("-bin"):
            try:
                wire.append((key, base64.b64decode(value, validate=True)))
            except binascii.Error as e:
                raise ValueError(f"binary header {key} must be base64 encoded: {e}") from e
        else:
            wire.append((key, value))
    return tuple(wire)


def from_wire_metadata(metadata: Optional[Iterable[Tuple[str, Union[str, bytes]]]]) -> List[Tuple[str, str]]:
    """Convert received metadata into printable pairs.

    Args:
        metadata: Metadata as returned by gRPC, possibly None

    Returns:
        List[Tuple[str, str]]: Pairs with binary values base64-encoded
    """
    pairs = []
    for key, value in metadata or ():
        if isinstance(value, bytes):
            value = base64.b64encode(value).decode("ascii")
        pairs.append((key, value))
    return pairs
