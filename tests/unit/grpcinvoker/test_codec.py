# -*- coding: utf-8 -*-
"""Location: ./tests/unit/grpcinvoker/test_codec.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Tests for the dynamic message codec.
"""

# Third-Party
import orjson
import pytest

# First-Party
from grpcinvoker.codec import decode_request, DynamicValue, encode_message, Schema
from grpcinvoker.errors import CodecError


@pytest.fixture
def item(shop_pool):
    return shop_pool.FindMessageTypeByName("shop.Item")


class TestDynamicValue:
    def test_from_json_and_field_access(self, item):
        value = DynamicValue.from_json(item, b'{"sku": "B-1", "quantity": 3, "tags": ["a", "b"], "kind": "KIND_BOOK"}')
        assert value["sku"] == "B-1"
        assert value["quantity"] == 3
        assert list(value["tags"]) == ["a", "b"]
        assert value["kind"] == 1

    def test_json_names_are_accepted(self, item):
        value = DynamicValue.from_object(item, {"unitPrice": "42", "addedAt": "2024-01-02T03:04:05Z"})
        assert value["unit_price"] == 42
        assert value["added_at"].seconds > 0

    def test_to_object_uses_proto_names_and_prints_defaults(self, item):
        document = DynamicValue.from_object(item, {"sku": "B-1", "attrs": {"w": 2}}).to_object()
        assert document["sku"] == "B-1"
        assert document["quantity"] == 0
        assert document["tags"] == []
        assert document["attrs"] == {"w": 2}
        assert document["kind"] == "KIND_UNSPECIFIED"

    def test_round_trip(self, item):
        original = {"sku": "B-1", "quantity": 2, "tags": ["x"], "child": {"sku": "C-1"}, "card": "visa"}
        value = DynamicValue.from_object(item, original)
        again = DynamicValue.from_json(item, value.to_json())
        assert again.message == value.message

    def test_unknown_field(self, item):
        with pytest.raises(CodecError, match="unknown field 'color'"):
            DynamicValue.from_object(item, {"color": "red"})

    def test_unknown_field_access(self, item):
        value = DynamicValue.from_object(item, {})
        with pytest.raises(CodecError):
            value["color"]

    @pytest.mark.parametrize(
        "document,reason",
        [
            ({"sku": 5}, "sku: expected string, got int"),
            ({"quantity": "many"}, None),
            ({"quantity": True}, "quantity: expected integer, got bool"),
            ({"tags": "x"}, "tags: expected array, got str"),
            ({"tags": [1]}, "tags[0]: expected string, got int"),
            ({"attrs": []}, "attrs: expected object, got array"),
            ({"child": {"sku": 1}}, "child.sku: expected string, got int"),
            ({"kind": 1.5}, None),
        ],
    )
    def test_type_mismatches(self, item, document, reason):
        with pytest.raises(CodecError) as excinfo:
            DynamicValue.from_object(item, document)
        assert excinfo.value.message_type == "shop.Item"
        if reason is not None:
            assert excinfo.value.reason == reason

    def test_malformed_json(self, item):
        with pytest.raises(CodecError, match="malformed JSON"):
            DynamicValue.from_json(item, b"{not json")

    def test_null_fields_are_ignored(self, item):
        assert DynamicValue.from_object(item, {"sku": None})["sku"] == ""


class TestDecodeRequest:
    def test_empty_body_is_empty_message(self, item):
        (message,) = decode_request(item, b"  ")
        assert message.ByteSize() == 0

    def test_array_for_unary_is_rejected(self, item):
        with pytest.raises(CodecError, match="expected object, got array"):
            decode_request(item, b"[{}]")

    def test_array_for_streaming_is_split(self, item):
        messages = decode_request(item, orjson.dumps([{"sku": "a"}, {"sku": "b"}, {}]), streaming=True)
        assert [m.sku for m in messages] == ["a", "b", ""]

    def test_object_for_streaming_is_one_message(self, item):
        assert len(decode_request(item, b'{"sku": "a"}', streaming=True)) == 1


class TestSchema:
    def test_field_names(self, item):
        assert Schema(item).field_names()[:3] == ["sku", "quantity", "tags"]

    def test_encode_message(self, item):
        message = Schema(item).new_message()
        message.sku = "Z"
        assert encode_message(message)["sku"] == "Z"
