# -*- coding: utf-8 -*-
"""Location: ./tests/unit/grpcinvoker/conftest.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Descriptor test data: a two-service ``shop.proto`` built in a private pool, and
a reflection-enabled server that implements it with every call cardinality.
"""

# Standard
from concurrent import futures
import time

# Third-Party
from google.protobuf import any_pb2, descriptor_pb2, descriptor_pool, message_factory, timestamp_pb2  # noqa: F401  pylint: disable=unused-import
from google.rpc import code_pb2, status_pb2
import grpc
from grpc_reflection.v1alpha import reflection
from grpc_status import rpc_status
import pytest

_F = descriptor_pb2.FieldDescriptorProto


def build_shop_pool() -> descriptor_pool.DescriptorPool:
    """Build a pool holding ``shop.proto`` and its ``google/protobuf/timestamp.proto`` import."""
    proto = descriptor_pb2.FileDescriptorProto(name="shop.proto", package="shop", syntax="proto3", dependency=["google/protobuf/timestamp.proto"])

    item = proto.message_type.add(name="Item")
    item.field.add(name="sku", number=1, type=_F.TYPE_STRING, label=_F.LABEL_OPTIONAL, json_name="sku")
    item.field.add(name="quantity", number=2, type=_F.TYPE_INT32, label=_F.LABEL_OPTIONAL, json_name="quantity")
    item.field.add(name="tags", number=3, type=_F.TYPE_STRING, label=_F.LABEL_REPEATED, json_name="tags")
    item.field.add(name="kind", number=4, type=_F.TYPE_ENUM, label=_F.LABEL_OPTIONAL, type_name=".shop.Kind", json_name="kind")
    item.field.add(name="added_at", number=5, type=_F.TYPE_MESSAGE, label=_F.LABEL_OPTIONAL, type_name=".google.protobuf.Timestamp", json_name="addedAt")
    item.field.add(name="child", number=6, type=_F.TYPE_MESSAGE, label=_F.LABEL_OPTIONAL, type_name=".shop.Item", json_name="child")
    item.field.add(name="unit_price", number=7, type=_F.TYPE_INT64, label=_F.LABEL_OPTIONAL, json_name="unitPrice")

    entry = item.nested_type.add(name="AttrsEntry")
    entry.options.map_entry = True
    entry.field.add(name="key", number=1, type=_F.TYPE_STRING, label=_F.LABEL_OPTIONAL, json_name="key")
    entry.field.add(name="value", number=2, type=_F.TYPE_INT32, label=_F.LABEL_OPTIONAL, json_name="value")
    item.field.add(name="attrs", number=8, type=_F.TYPE_MESSAGE, label=_F.LABEL_REPEATED, type_name=".shop.Item.AttrsEntry", json_name="attrs")

    item.oneof_decl.add(name="payment")
    item.field.add(name="card", number=9, type=_F.TYPE_STRING, label=_F.LABEL_OPTIONAL, oneof_index=0, json_name="card")
    item.field.add(name="voucher", number=10, type=_F.TYPE_STRING, label=_F.LABEL_OPTIONAL, oneof_index=0, json_name="voucher")

    proto.message_type.add(name="Ack")

    kind = proto.enum_type.add(name="Kind")
    kind.value.add(name="KIND_UNSPECIFIED", number=0)
    kind.value.add(name="KIND_BOOK", number=1)

    cart = proto.service.add(name="Cart")
    cart.method.add(name="Add", input_type=".shop.Item", output_type=".shop.Ack")
    cart.method.add(name="Remove", input_type=".shop.Item", output_type=".shop.Ack")
    cart.method.add(name="Watch", input_type=".shop.Item", output_type=".shop.Item", server_streaming=True)
    cart.method.add(name="Sync", input_type=".shop.Item", output_type=".shop.Item", client_streaming=True, server_streaming=True)
    orders = proto.service.add(name="Orders")
    orders.method.add(name="Place", input_type=".shop.Item", output_type=".shop.Ack", client_streaming=True)

    timestamp = descriptor_pb2.FileDescriptorProto()
    descriptor_pool.Default().FindFileByName("google/protobuf/timestamp.proto").CopyToProto(timestamp)

    pool = descriptor_pool.DescriptorPool()
    pool.Add(timestamp)
    pool.Add(proto)
    return pool


@pytest.fixture(scope="session")
def shop_pool():
    """Pool holding ``shop.proto``."""
    return build_shop_pool()


@pytest.fixture(scope="session")
def shop_file(shop_pool):
    """The ``shop.proto`` file descriptor."""
    return shop_pool.FindFileByName("shop.proto")


def _shop_handlers(pool: descriptor_pool.DescriptorPool):
    item_cls = message_factory.GetMessageClass(pool.FindMessageTypeByName("shop.Item"))
    ack_cls = message_factory.GetMessageClass(pool.FindMessageTypeByName("shop.Ack"))

    def add(request, context):  # pylint: disable=unused-argument
        return ack_cls()

    def remove(request, context):
        detail = any_pb2.Any()
        detail.Pack(item_cls(sku=request.sku))
        status = status_pb2.Status(code=code_pb2.FAILED_PRECONDITION, message="item is not in the cart", details=[detail])
        context.abort_with_status(rpc_status.to_status(status))

    def watch(request, context):
        for tag in request.tags:
            yield item_cls(sku=tag)
        # quantity is the number of seconds to hold the stream open afterwards
        until = time.monotonic() + request.quantity
        while context.is_active() and time.monotonic() < until:
            time.sleep(0.05)

    def sync(request_iterator, context):  # pylint: disable=unused-argument
        for item in request_iterator:
            yield item_cls(sku=item.sku.upper())

    def place(request_iterator, context):
        count = sum(1 for _ in request_iterator)
        context.send_initial_metadata((("count", str(count)),))
        return ack_cls()

    kwargs = {"request_deserializer": item_cls.FromString, "response_serializer": lambda m: m.SerializeToString()}
    cart = grpc.method_handlers_generic_handler(
        "shop.Cart",
        {
            "Add": grpc.unary_unary_rpc_method_handler(add, **kwargs),
            "Remove": grpc.unary_unary_rpc_method_handler(remove, **kwargs),
            "Watch": grpc.unary_stream_rpc_method_handler(watch, **kwargs),
            "Sync": grpc.stream_stream_rpc_method_handler(sync, **kwargs),
        },
    )
    orders = grpc.method_handlers_generic_handler("shop.Orders", {"Place": grpc.stream_unary_rpc_method_handler(place, **kwargs)})
    return cart, orders


@pytest.fixture(scope="session")
def shop_address(shop_pool):
    """Address of a local ``shop`` server with reflection, for the whole session."""
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=8))
    server.add_generic_rpc_handlers(_shop_handlers(shop_pool))
    reflection.enable_server_reflection(("shop.Cart", "shop.Orders", reflection.SERVICE_NAME), server, pool=shop_pool)
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()
    yield f"127.0.0.1:{port}"
    server.stop(None).wait()
