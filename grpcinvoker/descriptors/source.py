# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/descriptors/source.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Descriptor sources.

A descriptor source answers three questions about a server's schema: which
services exist, what a fully-qualified symbol resolves to, and which
extensions a message type has. Three implementations:

- ``ReflectionDescriptorSource`` asks the server through reflection.
- ``FileDescriptorSource`` answers from file descriptors already in hand
  (a protoset file, or the file graph of a method being invoked).
- ``CompositeDescriptorSource`` lists services from reflection and resolves
  symbols through reflection first, then through an optional file source.
"""

# Standard
from abc import ABC, abstractmethod
import logging
import os
import threading
from typing import Any, Dict, Iterable, List, Optional

# Third-Party
from google.protobuf import any_pb2, api_pb2, descriptor_pb2, descriptor_pool, duration_pb2, empty_pb2, field_mask_pb2, source_context_pb2, struct_pb2, timestamp_pb2, type_pb2, wrappers_pb2  # noqa: F401  pylint: disable=unused-import
from google.protobuf.descriptor import Descriptor, EnumDescriptor, EnumValueDescriptor, FieldDescriptor, FileDescriptor, MethodDescriptor, ServiceDescriptor
import grpc

# First-Party
from grpcinvoker.descriptors.reflection import ReflectionClient
from grpcinvoker.errors import DiscoveryError, SymbolNotFoundError

logger = logging.getLogger(__name__)

# Lookups tried in order when reflection has loaded the file holding a symbol
_POOL_FINDERS = (
    "FindServiceByName",
    "FindMessageTypeByName",
    "FindEnumTypeByName",
    "FindMethodByName",
    "FindExtensionByName",
    "FindFieldByName",
    "FindEnumValueByName",
)


def descriptor_kind(descriptor: Any) -> str:
    """Name the kind of a descriptor.

    Args:
        descriptor: Any protobuf descriptor

    Returns:
        str: ``service``, ``method``, ``message``, ``enum``, ``enum value``,
        ``field``, ``extension``, ``file`` or the class name

    Examples:
        >>> from google.protobuf import empty_pb2
        >>> descriptor_kind(empty_pb2.Empty.DESCRIPTOR)
        'message'
        >>> descriptor_kind(empty_pb2.DESCRIPTOR)
        'file'
    """
    if isinstance(descriptor, ServiceDescriptor):
        return "service"
    if isinstance(descriptor, MethodDescriptor):
        return "method"
    if isinstance(descriptor, Descriptor):
        return "message"
    if isinstance(descriptor, EnumDescriptor):
        return "enum"
    if isinstance(descriptor, EnumValueDescriptor):
        return "enum value"
    if isinstance(descriptor, FieldDescriptor):
        return "extension" if descriptor.is_extension else "field"
    if isinstance(descriptor, FileDescriptor):
        return "file"
    return type(descriptor).__name__


class DescriptorSource(ABC):
    """Resolves schema information for one server."""

    @abstractmethod
    def list_services(self) -> List[str]:
        """List fully-qualified service names.

        Returns:
            List[str]: Service names
        """

    @abstractmethod
    def find_symbol(self, name: str) -> Any:
        """Resolve a fully-qualified symbol.

        Args:
            name: Symbol name; a leading ``.`` is ignored

        Returns:
            Any: The descriptor

        Raises:
            SymbolNotFoundError: If the symbol is unknown
        """

    @abstractmethod
    def all_extensions_for_type(self, type_name: str) -> List[FieldDescriptor]:
        """List the extensions of a message type.

        Args:
            type_name: Fully-qualified message name

        Returns:
            List[FieldDescriptor]: Extension fields
        """


class ReflectionDescriptorSource(DescriptorSource):
    """Descriptor source backed by the server's reflection service."""

    def __init__(self, client: ReflectionClient):
        """Initialize the source.

        Args:
            client: Reflection client for the target channel
        """
        self.client = client
        self._lock = threading.Lock()
        self._services: Optional[List[str]] = None

    @property
    def pool(self) -> descriptor_pool.DescriptorPool:
        """Pool holding every file fetched so far."""
        return self.client.pool

    def list_services(self) -> List[str]:
        """List services once, then answer from memory.

        Returns:
            List[str]: Service names

        Raises:
            DiscoveryError: If reflection fails
        """
        with self._lock:
            if self._services is None:
                self._services = self.client.list_services()
            return list(self._services)

    def find_symbol(self, name: str) -> Any:
        name = name.lstrip(".")
        pool = self.client.pool
        try:
            _load_containing_file(pool, name)
        except KeyError as e:
            raise SymbolNotFoundError(name) from e
        except grpc.RpcError as e:
            raise DiscoveryError(f"failed to resolve {name} through reflection: {e}") from e

        for finder in _POOL_FINDERS:
            lookup = getattr(pool, finder, None)
            if lookup is None:
                continue
            try:
                return lookup(name)
            except KeyError:
                continue
            except grpc.RpcError as e:
                raise DiscoveryError(f"failed to resolve {name} through reflection: {e}") from e
        raise SymbolNotFoundError(name)

    def all_extensions_for_type(self, type_name: str) -> List[FieldDescriptor]:
        type_name = type_name.lstrip(".")
        pool = self.client.pool
        try:
            message = pool.FindMessageTypeByName(type_name)
            numbers = self.client.all_extension_numbers(type_name)
            return [pool.FindExtensionByNumber(message, number) for number in numbers]
        except KeyError as e:
            raise DiscoveryError(f"failed to list extensions of {type_name}: {e}") from e


class FileDescriptorSource(DescriptorSource):
    """Descriptor source over a fixed set of file descriptors.

    The transitive closure of the given files is indexed, so symbols from
    imported files resolve as well.

    Examples:
        >>> from google.protobuf import timestamp_pb2
        >>> src = FileDescriptorSource.from_file_descriptors(timestamp_pb2.DESCRIPTOR)
        >>> src.find_symbol(".google.protobuf.Timestamp").full_name
        'google.protobuf.Timestamp'
        >>> src.list_services()
        []
    """

    def __init__(self, files: Iterable[FileDescriptor]):
        """Index the files and everything they import.

        Args:
            files: File descriptors to expose
        """
        self.files: Dict[str, FileDescriptor] = {}
        self._symbols: Dict[str, Any] = {}
        self._extensions: Dict[str, List[FieldDescriptor]] = {}
        for file in files:
            self._add_file(file)

    @classmethod
    def from_file_descriptors(cls, *files: FileDescriptor) -> "FileDescriptorSource":
        """Build a source from file descriptors.

        Args:
            *files: File descriptors

        Returns:
            FileDescriptorSource: The source
        """
        return cls(files)

    @classmethod
    def from_protoset(cls, path: str) -> "FileDescriptorSource":
        """Build a source from a serialized ``FileDescriptorSet``.

        Args:
            path: Path of the protoset file

        Returns:
            FileDescriptorSource: The source

        Raises:
            DiscoveryError: If the file cannot be read or its files do not link
        """
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise DiscoveryError(f"could not read protoset {path}: {e}") from e

        fds = descriptor_pb2.FileDescriptorSet()
        try:
            fds.ParseFromString(data)
            pool = _build_pool(fds.file)
            files = [pool.FindFileByName(proto.name) for proto in fds.file]
        except Exception as e:
            raise DiscoveryError(f"could not load protoset {path}: {e}") from e
        logger.info(f"Loaded {len(files)} file descriptor(s) from {path}")
        return cls(files)

    @classmethod
    def from_protoset_bytes(cls, name: str, data: bytes, directory: str) -> "FileDescriptorSource":
        """Persist a protoset upload and build a source from it.

        Args:
            name: File name of the upload
            data: Serialized ``FileDescriptorSet``
            directory: Directory the file is written to

        Returns:
            FileDescriptorSource: The source
        """
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, os.path.basename(name) or "upload.protoset")
        with open(path, "wb") as f:
            f.write(data)
        return cls.from_protoset(path)

    def _add_file(self, file: FileDescriptor) -> None:
        if file.name in self.files:
            return
        self.files[file.name] = file
        for dep in file.dependencies:
            self._add_file(dep)

        prefix = f"{file.package}." if file.package else ""
        for service in file.services_by_name.values():
            self._symbols[service.full_name] = service
            for method in service.methods:
                self._symbols[method.full_name] = method
        for message in file.message_types_by_name.values():
            self._add_message(message)
        for enum in file.enum_types_by_name.values():
            self._add_enum(enum, prefix)
        for ext in file.extensions_by_name.values():
            self._add_extension(ext)

    def _add_message(self, message: Descriptor) -> None:
        self._symbols[message.full_name] = message
        for field in message.fields:
            self._symbols[field.full_name] = field
        for nested in message.nested_types:
            self._add_message(nested)
        for enum in message.enum_types:
            self._add_enum(enum, f"{message.full_name}.")
        for ext in message.extensions:
            self._add_extension(ext)

    def _add_enum(self, enum: EnumDescriptor, scope: str) -> None:
        self._symbols[enum.full_name] = enum
        # Enum values are scoped to the enum's parent
        for value in enum.values:
            self._symbols.setdefault(f"{scope}{value.name}", value)

    def _add_extension(self, ext: FieldDescriptor) -> None:
        self._symbols[ext.full_name] = ext
        self._extensions.setdefault(ext.containing_type.full_name, []).append(ext)

    def list_services(self) -> List[str]:
        return sorted(name for name, d in self._symbols.items() if isinstance(d, ServiceDescriptor))

    def find_symbol(self, name: str) -> Any:
        name = name.lstrip(".")
        try:
            return self._symbols[name]
        except KeyError as e:
            raise SymbolNotFoundError(name) from e

    def all_extensions_for_type(self, type_name: str) -> List[FieldDescriptor]:
        return list(self._extensions.get(type_name.lstrip("."), []))


class CompositeDescriptorSource(DescriptorSource):
    """Reflection first, file descriptors as the fallback.

    Examples:
        >>> from unittest.mock import MagicMock
        >>> reflection = MagicMock()
        >>> reflection.list_services.return_value = ["user.User"]
        >>> CompositeDescriptorSource(reflection).list_services()
        ['user.User']
    """

    def __init__(self, reflection: DescriptorSource, file: Optional[DescriptorSource] = None):
        """Initialize the composite.

        Args:
            reflection: Reflection-backed source
            file: Optional static source
        """
        self.reflection = reflection
        self.file = file

    @property
    def pool(self) -> Optional[descriptor_pool.DescriptorPool]:
        """Pool of the reflection source, when it has one."""
        return getattr(self.reflection, "pool", None)

    def list_services(self) -> List[str]:
        return self.reflection.list_services()

    def find_symbol(self, name: str) -> Any:
        try:
            return self.reflection.find_symbol(name)
        except DiscoveryError:
            if self.file is None:
                raise
            return self.file.find_symbol(name)

    def all_extensions_for_type(self, type_name: str) -> List[FieldDescriptor]:
        try:
            extensions = list(self.reflection.all_extensions_for_type(type_name))
        except DiscoveryError:
            if self.file is None:
                raise
            return self.file.all_extensions_for_type(type_name)
        if self.file is None:
            return extensions

        claimed = {ext.number for ext in extensions}
        for ext in self.file.all_extensions_for_type(type_name):
            if ext.number not in claimed:
                claimed.add(ext.number)
                extensions.append(ext)
        return extensions


def _load_containing_file(pool: descriptor_pool.DescriptorPool, name: str) -> None:
    """Make sure the file declaring a symbol is in the pool.

    Pools do not index every member kind (methods in particular), so a miss
    is retried with the enclosing symbol.

    Args:
        pool: Pool backed by a reflection database
        name: Fully-qualified symbol name

    Raises:
        KeyError: If neither the symbol nor its parent is known
    """
    try:
        pool.FindFileContainingSymbol(name)
    except KeyError:
        parent, dot, _ = name.rpartition(".")
        if not dot:
            raise
        pool.FindFileContainingSymbol(parent)


def _build_pool(protos: Iterable[descriptor_pb2.FileDescriptorProto]) -> descriptor_pool.DescriptorPool:
    """Add file protos to a fresh pool in dependency order.

    Dependencies missing from the set are taken from the default pool, which
    holds the well-known types.

    Args:
        protos: File descriptor protos

    Returns:
        descriptor_pool.DescriptorPool: Pool holding every file

    Raises:
        KeyError: If a dependency is neither in the set nor in the default pool
    """
    by_name = {proto.name: proto for proto in protos}
    pool = descriptor_pool.DescriptorPool()
    added = set()

    def add(name: str) -> None:
        if name in added:
            return
        added.add(name)
        proto = by_name.get(name)
        if proto is None:
            proto = descriptor_pb2.FileDescriptorProto()
            descriptor_pool.Default().FindFileByName(name).CopyToProto(proto)
        for dep in proto.dependency:
            add(dep)
        pool.Add(proto)

    for name in by_name:
        add(name)
    return pool
