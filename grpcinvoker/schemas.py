# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/schemas.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Request schemas and templates.

Describes a method's request shape as plain data (message types with their
field definitions, enum types with their values) so callers can build a
request without reading descriptors, and renders JSON templates with every
field filled in.

Examples:
    >>> from google.protobuf import duration_pb2
    >>> make_template(duration_pb2.Duration.DESCRIPTOR)
    '"0s"'
"""

# Standard
from typing import Any, Dict, List, Optional, Set

# Third-Party
from google.protobuf.descriptor import Descriptor, EnumDescriptor, FieldDescriptor, MethodDescriptor
import orjson
from pydantic import Field

# First-Party
from grpcinvoker.utils.base_models import BaseModelWithConfigDict

# Scalar names as written in .proto files
_SCALAR_TYPE_NAMES: Dict[int, str] = {
    FieldDescriptor.TYPE_DOUBLE: "double",
    FieldDescriptor.TYPE_FLOAT: "float",
    FieldDescriptor.TYPE_INT64: "int64",
    FieldDescriptor.TYPE_UINT64: "uint64",
    FieldDescriptor.TYPE_INT32: "int32",
    FieldDescriptor.TYPE_FIXED64: "fixed64",
    FieldDescriptor.TYPE_FIXED32: "fixed32",
    FieldDescriptor.TYPE_BOOL: "bool",
    FieldDescriptor.TYPE_STRING: "string",
    FieldDescriptor.TYPE_BYTES: "bytes",
    FieldDescriptor.TYPE_UINT32: "uint32",
    FieldDescriptor.TYPE_SFIXED32: "sfixed32",
    FieldDescriptor.TYPE_SFIXED64: "sfixed64",
    FieldDescriptor.TYPE_SINT32: "sint32",
    FieldDescriptor.TYPE_SINT64: "sint64",
}

# 64-bit integers are strings in the JSON mapping
_STRING_ENCODED_TYPES = {
    FieldDescriptor.TYPE_INT64,
    FieldDescriptor.TYPE_UINT64,
    FieldDescriptor.TYPE_FIXED64,
    FieldDescriptor.TYPE_SFIXED64,
    FieldDescriptor.TYPE_SINT64,
}

# JSON form of an empty well-known type
_WELL_KNOWN_TEMPLATES: Dict[str, Any] = {
    "google.protobuf.Any": {},
    "google.protobuf.Duration": "0s",
    "google.protobuf.Empty": {},
    "google.protobuf.FieldMask": "",
    "google.protobuf.ListValue": [],
    "google.protobuf.Struct": {},
    "google.protobuf.Timestamp": "1970-01-01T00:00:00Z",
    "google.protobuf.Value": None,
    "google.protobuf.BoolValue": False,
    "google.protobuf.BytesValue": "",
    "google.protobuf.DoubleValue": 0.0,
    "google.protobuf.FloatValue": 0.0,
    "google.protobuf.Int32Value": 0,
    "google.protobuf.Int64Value": "0",
    "google.protobuf.StringValue": "",
    "google.protobuf.UInt32Value": 0,
    "google.protobuf.UInt64Value": "0",
}


class FieldDef(BaseModelWithConfigDict):
    """One field of a message type."""

    name: str
    proto_name: str
    type: str
    one_of_fields: List["FieldDef"] = Field(default_factory=list)
    is_message: bool = False
    is_enum: bool = False
    is_array: bool = False
    is_map: bool = False
    is_required: bool = False
    default_val: Any = None
    description: str = ""


class EnumValDef(BaseModelWithConfigDict):
    """One value of an enum type."""

    num: int
    name: str
    description: str = ""


class MethodSchema(BaseModelWithConfigDict):
    """Everything needed to build a request for one method."""

    request_type: str
    request_stream: bool = False
    message_types: Dict[str, List[FieldDef]] = Field(default_factory=dict)
    enum_types: Dict[str, List[EnumValDef]] = Field(default_factory=dict)


class SymbolDescription(BaseModelWithConfigDict):
    """A resolved symbol rendered for display."""

    kind: str
    full_name: str
    text: str
    template: Optional[str] = None


def is_well_known(descriptor: Descriptor) -> bool:
    """Check whether a message has a special JSON mapping.

    Args:
        descriptor: Message descriptor

    Returns:
        bool: True for the ``google.protobuf`` well-known types

    Examples:
        >>> from google.protobuf import timestamp_pb2, descriptor_pb2
        >>> is_well_known(timestamp_pb2.Timestamp.DESCRIPTOR)
        True
        >>> is_well_known(descriptor_pb2.FileDescriptorProto.DESCRIPTOR)
        False
    """
    return descriptor.full_name in _WELL_KNOWN_TEMPLATES


def _type_name(field: FieldDescriptor) -> str:
    if field.message_type is not None:
        return field.message_type.full_name
    if field.enum_type is not None:
        return field.enum_type.full_name
    return _SCALAR_TYPE_NAMES.get(field.type, "unknown")


def is_map_field(field: FieldDescriptor) -> bool:
    """Check whether a field is a map.

    Args:
        field: Field descriptor

    Returns:
        bool: True if the field is a ``map<K, V>``
    """
    message = field.message_type
    return field.is_repeated and message is not None and message.GetOptions().map_entry


def _field_def(field: FieldDescriptor) -> FieldDef:
    default = None
    if field.has_default_value and not field.is_repeated:
        default = field.default_value
        if isinstance(default, bytes):
            default = default.decode("utf-8", errors="replace")
    return FieldDef(
        name=field.json_name,
        proto_name=field.name,
        type=_type_name(field),
        is_message=field.message_type is not None,
        is_enum=field.enum_type is not None,
        is_array=field.is_repeated and not is_map_field(field),
        is_map=is_map_field(field),
        is_required=field.is_required,
        default_val=default,
    )


def _message_fields(message: Descriptor) -> List[FieldDef]:
    defs: List[FieldDef] = []
    seen_oneofs: Set[str] = set()
    for field in message.fields:
        oneof = field.containing_oneof
        # Synthetic oneofs back proto3 optional fields
        if oneof is not None and not (len(oneof.fields) == 1 and oneof.name == f"_{field.name}"):
            if oneof.name in seen_oneofs:
                continue
            seen_oneofs.add(oneof.name)
            defs.append(FieldDef(name=oneof.name, proto_name=oneof.name, type="oneof", one_of_fields=[_field_def(f) for f in oneof.fields]))
            continue
        defs.append(_field_def(field))
    return defs


def gather_method_schema(method: MethodDescriptor) -> MethodSchema:
    """Describe the request of a method.

    Every message and enum reachable from the request type is included once.

    Args:
        method: Method descriptor

    Returns:
        MethodSchema: The request schema

    Examples:
        >>> from unittest.mock import MagicMock
        >>> from google.protobuf import duration_pb2
        >>> method = MagicMock(input_type=duration_pb2.Duration.DESCRIPTOR, client_streaming=False)
        >>> schema = gather_method_schema(method)
        >>> schema.request_type
        'google.protobuf.Duration'
        >>> [f.name for f in schema.message_types["google.protobuf.Duration"]]
        ['seconds', 'nanos']
    """
    schema = MethodSchema(request_type=method.input_type.full_name, request_stream=method.client_streaming)
    pending: List[Any] = [method.input_type]
    while pending:
        descriptor = pending.pop()
        if isinstance(descriptor, EnumDescriptor):
            if descriptor.full_name not in schema.enum_types:
                schema.enum_types[descriptor.full_name] = [EnumValDef(num=v.number, name=v.name) for v in descriptor.values]
            continue
        if descriptor.full_name in schema.message_types:
            continue
        schema.message_types[descriptor.full_name] = _message_fields(descriptor)
        for field in descriptor.fields:
            if field.message_type is not None:
                pending.append(field.message_type)
            elif field.enum_type is not None:
                pending.append(field.enum_type)
    return schema


def _scalar_template(field: FieldDescriptor) -> Any:
    if field.enum_type is not None:
        return field.enum_type.values[0].name if field.enum_type.values else 0
    if field.type in _STRING_ENCODED_TYPES:
        return "0"
    if field.type == FieldDescriptor.TYPE_BOOL:
        return False
    if field.type in (FieldDescriptor.TYPE_DOUBLE, FieldDescriptor.TYPE_FLOAT):
        return 0.0
    if field.type in (FieldDescriptor.TYPE_STRING, FieldDescriptor.TYPE_BYTES):
        return ""
    return 0


def _value_template(field: FieldDescriptor, path: Set[str]) -> Any:
    if field.message_type is not None:
        return _message_template(field.message_type, path)
    return _scalar_template(field)


def _message_template(message: Descriptor, path: Set[str]) -> Any:
    if message.full_name in _WELL_KNOWN_TEMPLATES:
        return _WELL_KNOWN_TEMPLATES[message.full_name]
    if message.full_name in path:
        # Recursive types stop at the first repeat
        return {}
    path = path | {message.full_name}
    template: Dict[str, Any] = {}
    for field in message.fields:
        if is_map_field(field):
            key_field = field.message_type.fields_by_name["key"]
            value_field = field.message_type.fields_by_name["value"]
            key = _scalar_template(key_field)
            template[field.name] = {str(key).lower() if isinstance(key, bool) else str(key): _value_template(value_field, path)}
        elif field.is_repeated:
            template[field.name] = [_value_template(field, path)]
        else:
            template[field.name] = _value_template(field, path)
    return template


def make_template(descriptor: Descriptor) -> str:
    """Render a JSON template with every field of a message filled in.

    Repeated fields hold one element and maps hold one entry.

    Args:
        descriptor: Message descriptor

    Returns:
        str: Pretty-printed JSON document

    Examples:
        >>> from google.protobuf import field_mask_pb2, descriptor_pb2
        >>> make_template(field_mask_pb2.FieldMask.DESCRIPTOR)
        '""'
        >>> import orjson
        >>> orjson.loads(make_template(descriptor_pb2.FileDescriptorSet.DESCRIPTOR))["file"][0]["name"]
        ''
    """
    return orjson.dumps(_message_template(descriptor, set()), option=orjson.OPT_INDENT_2).decode("utf-8")


FieldDef.model_rebuild()
