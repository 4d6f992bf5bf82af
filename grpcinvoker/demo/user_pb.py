# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/demo/user_pb.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Descriptors of the demo ``user.proto``.

The file is assembled as a ``FileDescriptorProto`` and added to a private
descriptor pool, so the demo server needs no generated code and its schema
is only reachable through reflection.

Examples:
    >>> POOL.FindServiceByName("user.User").methods_by_name["Login"].input_type.full_name
    'user.LoginReq'
    >>> message_class("user.LoginResp")(Token="t").Token
    't'
"""

# Standard
from typing import Dict, List, Tuple, Type

# Third-Party
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

FILE_NAME = "user.proto"
PACKAGE = "user"
SERVICE_NAME = "user.User"

_F = descriptor_pb2.FieldDescriptorProto

# name -> [(field name, number, type, type name, repeated)]
_MESSAGES: Dict[str, List[Tuple[str, int, int, str, bool]]] = {
    "RegisterUserReq": [
        ("UserName", 1, _F.TYPE_STRING, "", False),
        ("Password", 2, _F.TYPE_STRING, "", False),
        ("Sex", 3, _F.TYPE_ENUM, ".user.UserSex", False),
    ],
    "RegisterUserResp": [
        ("ID", 1, _F.TYPE_UINT32, "", False),
        ("UserName", 2, _F.TYPE_STRING, "", False),
    ],
    "LoginReq": [
        ("UserName", 1, _F.TYPE_STRING, "", False),
        ("Password", 2, _F.TYPE_STRING, "", False),
    ],
    "LoginResp": [
        ("ID", 1, _F.TYPE_UINT32, "", False),
        ("UserName", 2, _F.TYPE_STRING, "", False),
        ("Token", 3, _F.TYPE_STRING, "", False),
    ],
    "UserInfoReq": [],
    "UserInfoResp": [
        ("ID", 1, _F.TYPE_UINT32, "", False),
        ("UserName", 2, _F.TYPE_STRING, "", False),
    ],
    "UploadImgReq": [
        ("Img", 1, _F.TYPE_BYTES, "", False),
        ("FileType", 2, _F.TYPE_ENUM, ".user.UploadImgType", False),
    ],
    "UploadImgResp": [
        ("Message", 1, _F.TYPE_STRING, "", False),
    ],
    "GetUserListReq": [
        ("Sort", 1, _F.TYPE_ENUM, ".user.UserListSort", False),
    ],
    "UserSimple": [
        ("ID", 1, _F.TYPE_UINT32, "", False),
        ("UserName", 2, _F.TYPE_STRING, "", False),
        ("Sex", 3, _F.TYPE_ENUM, ".user.UserSex", False),
        ("G", 4, _F.TYPE_INT32, "", False),
        ("T", 5, _F.TYPE_INT32, "", False),
        ("A", 6, _F.TYPE_INT32, "", False),
        ("W", 7, _F.TYPE_INT32, "", False),
    ],
    "GetUserListResp": [
        ("UserInfo", 1, _F.TYPE_MESSAGE, ".user.UserSimple", True),
    ],
    "CancellationReq": [],
    "CancellationResp": [],
}

_ENUMS: Dict[str, List[Tuple[str, int]]] = {
    "UserSex": [("Male", 0), ("Female", 1)],
    "UploadImgType": [("JPG", 0), ("PNG", 1)],
    "UserListSort": [("ASC", 0), ("DESC", 1)],
}

# method -> (request, response)
METHODS: Dict[str, Tuple[str, str]] = {
    "RegisterUser": ("RegisterUserReq", "RegisterUserResp"),
    "Login": ("LoginReq", "LoginResp"),
    "Cancellation": ("CancellationReq", "CancellationResp"),
    "UploadImg": ("UploadImgReq", "UploadImgResp"),
    "GetUserList": ("GetUserListReq", "GetUserListResp"),
    "UserInfo": ("UserInfoReq", "UserInfoResp"),
}


def build_file_proto() -> descriptor_pb2.FileDescriptorProto:
    """Assemble ``user.proto``.

    Returns:
        descriptor_pb2.FileDescriptorProto: The file

    Examples:
        >>> proto = build_file_proto()
        >>> proto.syntax, proto.service[0].name
        ('proto3', 'User')
    """
    proto = descriptor_pb2.FileDescriptorProto(name=FILE_NAME, package=PACKAGE, syntax="proto3")
    proto.options.go_package = "./user"
    for enum_name, values in _ENUMS.items():
        enum = proto.enum_type.add(name=enum_name)
        for value_name, number in values:
            enum.value.add(name=value_name, number=number)
    for message_name, fields in _MESSAGES.items():
        message = proto.message_type.add(name=message_name)
        for field_name, number, field_type, type_name, repeated in fields:
            field = message.field.add(
                name=field_name,
                number=number,
                type=field_type,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
                json_name=field_name,
            )
            if type_name:
                field.type_name = type_name
    service = proto.service.add(name="User")
    for method_name, (request, response) in METHODS.items():
        service.method.add(name=method_name, input_type=f".{PACKAGE}.{request}", output_type=f".{PACKAGE}.{response}")
    return proto


POOL = descriptor_pool.DescriptorPool()
POOL.Add(build_file_proto())
FILE = POOL.FindFileByName(FILE_NAME)


def message_class(full_name: str) -> Type[Message]:
    """Return the message class of a ``user.proto`` message.

    Args:
        full_name: Fully-qualified message name

    Returns:
        Type[Message]: Message class
    """
    return message_factory.GetMessageClass(POOL.FindMessageTypeByName(full_name))
