# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/codec.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

JSON codec for late-bound messages.

Messages discovered at runtime have no generated Python class to lean on.
``Schema`` describes one message type's fields and checks that a decoded JSON
document has the right shape. ``DynamicValue`` holds a message built from
such a document; it is validated against its schema before anything reads
from it. The protobuf JSON mapping itself (``json_format``) does the actual
conversion.

Examples:
    >>> from google.protobuf import descriptor_pb2
    >>> value = DynamicValue.from_json(descriptor_pb2.FileDescriptorProto.DESCRIPTOR, b'{"name": "user.proto"}')
    >>> value["name"]
    'user.proto'
    >>> value.to_object()["dependency"]
    []
"""

# Standard
from typing import Any, Dict, List, Mapping, Optional

# Third-Party
from google.protobuf import descriptor_pool, json_format, message_factory
from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import Message
import orjson

# First-Party
from grpcinvoker.errors import CodecError
from grpcinvoker.schemas import is_map_field, is_well_known

_INTEGER_TYPES = {
    FieldDescriptor.CPPTYPE_INT32,
    FieldDescriptor.CPPTYPE_INT64,
    FieldDescriptor.CPPTYPE_UINT32,
    FieldDescriptor.CPPTYPE_UINT64,
}
_FLOAT_TYPES = {FieldDescriptor.CPPTYPE_DOUBLE, FieldDescriptor.CPPTYPE_FLOAT}


class Schema:
    """Field layout of one message type.

    Examples:
        >>> from google.protobuf import timestamp_pb2
        >>> schema = Schema(timestamp_pb2.Timestamp.DESCRIPTOR)
        >>> schema.full_name
        'google.protobuf.Timestamp'
        >>> schema.field_names()
        ['seconds', 'nanos']
    """

    def __init__(self, descriptor: Descriptor):
        """Initialize the schema.

        Args:
            descriptor: Message descriptor
        """
        self.descriptor = descriptor
        self._fields: Dict[str, FieldDescriptor] = {}
        for field in descriptor.fields:
            self._fields[field.name] = field
            self._fields.setdefault(field.json_name, field)

    @property
    def full_name(self) -> str:
        """Fully-qualified message name."""
        return self.descriptor.full_name

    def field_names(self) -> List[str]:
        """List proto field names in declaration order.

        Returns:
            List[str]: Field names
        """
        return [field.name for field in self.descriptor.fields]

    def field(self, name: str) -> FieldDescriptor:
        """Look up a field by proto or JSON name.

        Args:
            name: Field name

        Returns:
            FieldDescriptor: The field

        Raises:
            CodecError: If the message has no such field
        """
        try:
            return self._fields[name]
        except KeyError:
            raise CodecError(self.full_name, f"unknown field {name!r}") from None

    def validate(self, document: Any, path: str = "") -> None:
        """Check that a decoded JSON document fits this message.

        Well-known types have their own JSON forms and are left to the
        protobuf JSON parser.

        Args:
            document: Decoded JSON value
            path: Location of the document, for error messages

        Raises:
            CodecError: On the first mismatch

        Examples:
            >>> from google.protobuf import descriptor_pb2
            >>> Schema(descriptor_pb2.FileDescriptorProto.DESCRIPTOR).validate({"name": 1})
            Traceback (most recent call last):
            ...
            grpcinvoker.errors.CodecError: failed to decode JSON for google.protobuf.FileDescriptorProto: name: expected string, got int
        """
        if is_well_known(self.descriptor):
            return
        if not isinstance(document, dict):
            raise CodecError(self.full_name, f"{path or 'document'}: expected object, got {_json_type(document)}")
        for key, value in document.items():
            field = self.field(key)
            where = f"{path}.{key}" if path else key
            if value is None:
                continue
            if is_map_field(field):
                if not isinstance(value, dict):
                    raise CodecError(self.full_name, f"{where}: expected object, got {_json_type(value)}")
                value_field = field.message_type.fields_by_name["value"]
                for map_key, item in value.items():
                    self._check_value(value_field, item, f"{where}[{map_key}]")
            elif field.is_repeated:
                if not isinstance(value, list):
                    raise CodecError(self.full_name, f"{where}: expected array, got {_json_type(value)}")
                for index, item in enumerate(value):
                    self._check_value(field, item, f"{where}[{index}]")
            else:
                self._check_value(field, value, where)

    def _check_value(self, field: FieldDescriptor, value: Any, where: str) -> None:
        if value is None:
            return
        if field.message_type is not None:
            try:
                Schema(field.message_type).validate(value, where)
            except CodecError as e:
                raise CodecError(self.full_name, e.reason) from None
            return

        expected = None
        if field.cpp_type == FieldDescriptor.CPPTYPE_BOOL and not isinstance(value, bool):
            expected = "boolean"
        elif field.cpp_type in _INTEGER_TYPES and (isinstance(value, bool) or not isinstance(value, (int, float, str))):
            expected = "integer"
        elif field.cpp_type in _FLOAT_TYPES and (isinstance(value, bool) or not isinstance(value, (int, float, str))):
            expected = "number"
        elif field.cpp_type == FieldDescriptor.CPPTYPE_STRING and not isinstance(value, str):
            expected = "string"
        elif field.cpp_type == FieldDescriptor.CPPTYPE_ENUM and (isinstance(value, bool) or not isinstance(value, (int, str))):
            expected = "enum name or number"
        if expected is not None:
            raise CodecError(self.full_name, f"{where}: expected {expected}, got {_json_type(value)}")

    def new_message(self) -> Message:
        """Create an empty message of this type.

        Returns:
            Message: A dynamic message instance
        """
        return message_factory.GetMessageClass(self.descriptor)()


class DynamicValue:
    """A message of a runtime-discovered type.

    Instances are only created from documents that passed
    ``Schema.validate``, so field access never sees a malformed value.
    """

    def __init__(self, schema: Schema, message: Message):
        """Wrap a message.

        Args:
            schema: Schema of the message type
            message: The message
        """
        self.schema = schema
        self.message = message

    @classmethod
    def from_object(cls, descriptor: Descriptor, document: Any, pool: Optional[descriptor_pool.DescriptorPool] = None) -> "DynamicValue":
        """Build a value from decoded JSON.

        Args:
            descriptor: Message descriptor
            document: Decoded JSON value
            pool: Pool used to resolve ``Any`` payloads

        Returns:
            DynamicValue: The value

        Raises:
            CodecError: If the document does not fit the message
        """
        schema = Schema(descriptor)
        schema.validate(document)
        message = schema.new_message()
        try:
            json_format.ParseDict(document, message, descriptor_pool=pool)
        except json_format.ParseError as e:
            raise CodecError(schema.full_name, str(e)) from e
        return cls(schema, message)

    @classmethod
    def from_json(cls, descriptor: Descriptor, data: bytes, pool: Optional[descriptor_pool.DescriptorPool] = None) -> "DynamicValue":
        """Build a value from a JSON document.

        Args:
            descriptor: Message descriptor
            data: Encoded JSON document
            pool: Pool used to resolve ``Any`` payloads

        Returns:
            DynamicValue: The value

        Raises:
            CodecError: If the document is malformed or does not fit the message

        Examples:
            >>> from google.protobuf import descriptor_pb2
            >>> DynamicValue.from_json(descriptor_pb2.FileDescriptorProto.DESCRIPTOR, b"[1]")
            Traceback (most recent call last):
            ...
            grpcinvoker.errors.CodecError: failed to decode JSON for google.protobuf.FileDescriptorProto: document: expected object, got array
        """
        try:
            document = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise CodecError(descriptor.full_name, f"malformed JSON: {e}") from e
        return cls.from_object(descriptor, document, pool)

    def __getitem__(self, name: str) -> Any:
        """Read a field by proto or JSON name.

        Args:
            name: Field name

        Returns:
            Any: The field value as protobuf stores it

        Raises:
            CodecError: If the message has no such field
        """
        return getattr(self.message, self.schema.field(name).name)

    def to_object(self, pool: Optional[descriptor_pool.DescriptorPool] = None) -> Any:
        """Convert to a JSON-compatible value.

        Args:
            pool: Pool used to resolve ``Any`` payloads

        Returns:
            Any: Proto field names, default-valued fields included
        """
        return encode_message(self.message, pool)

    def to_json(self, pool: Optional[descriptor_pool.DescriptorPool] = None) -> bytes:
        """Encode as a JSON document.

        Args:
            pool: Pool used to resolve ``Any`` payloads

        Returns:
            bytes: The document
        """
        return orjson.dumps(self.to_object(pool))


def encode_message(message: Message, pool: Optional[descriptor_pool.DescriptorPool] = None) -> Any:
    """Convert a message to a JSON-compatible value.

    Args:
        message: Any protobuf message
        pool: Pool used to resolve ``Any`` payloads

    Returns:
        Any: Proto field names, default-valued fields included

    Examples:
        >>> from google.protobuf import descriptor_pb2
        >>> encode_message(descriptor_pb2.FileDescriptorProto(name="a.proto"))["name"]
        'a.proto'
    """
    return json_format.MessageToDict(
        message,
        preserving_proto_field_name=True,
        always_print_fields_with_no_presence=True,
        descriptor_pool=pool,
    )


def decode_request(descriptor: Descriptor, body: bytes, streaming: bool = False, pool: Optional[descriptor_pool.DescriptorPool] = None) -> List[Message]:
    """Decode a request body into the messages to send.

    An empty body is an empty message. When ``streaming`` is set, a top-level
    JSON array is sent as one message per element.

    Args:
        descriptor: Request message descriptor
        body: Raw request body
        streaming: Whether the method takes a request stream
        pool: Pool used to resolve ``Any`` payloads

    Returns:
        List[Message]: Messages in send order

    Raises:
        CodecError: If the body is malformed or does not fit the message

    Examples:
        >>> from google.protobuf import descriptor_pb2
        >>> proto = descriptor_pb2.FileDescriptorProto.DESCRIPTOR
        >>> [m.name for m in decode_request(proto, b"")]
        ['']
        >>> [m.name for m in decode_request(proto, b'[{"name": "a"}, {"name": "b"}]', streaming=True)]
        ['a', 'b']
    """
    if not body.strip():
        body = b"{}"
    try:
        document = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise CodecError(descriptor.full_name, f"malformed JSON: {e}") from e

    documents = document if streaming and isinstance(document, list) else [document]
    return [DynamicValue.from_object(descriptor, item, pool).message for item in documents]


def _json_type(value: Any) -> str:
    """Name the JSON type of a decoded value.

    Args:
        value: Decoded JSON value

    Returns:
        str: Type name
    """
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__
