# -*- coding: utf-8 -*-
"""Location: ./tests/unit/grpcinvoker/utils/test_metadata.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Unit tests for call metadata helpers.
"""

# Third-Party
import pytest

# First-Party
from grpcinvoker.utils.metadata import from_wire_metadata, parse_headers, to_wire_metadata


class TestParseHeaders:
    def test_keeps_order_and_duplicates(self):
        assert parse_headers(["a: 1", "b:2", "a: 3"]) == [("a", "1"), ("b", "2"), ("a", "3")]

    def test_value_may_contain_colons(self):
        assert parse_headers(["authorization: Bearer a:b"]) == [("authorization", "Bearer a:b")]

    @pytest.mark.parametrize("header", ["no-separator", ": value-only"])
    def test_rejects_malformed(self, header):
        with pytest.raises(ValueError):
            parse_headers([header])


class TestWireMetadata:
    def test_keys_are_lower_cased(self):
        assert to_wire_metadata([("Token", "abc"), ("ID", "1")]) == (("token", "abc"), ("id", "1"))

    def test_binary_values_are_decoded(self):
        assert to_wire_metadata([("blob-bin", "aGk=")]) == (("blob-bin", b"hi"),)

    def test_invalid_base64_raises(self):
        with pytest.raises(ValueError, match="blob-bin"):
            to_wire_metadata([("blob-bin", "not base64!")])

    def test_received_binary_values_are_encoded(self):
        assert from_wire_metadata([("blob-bin", b"hi"), ("func", "Login")]) == [("blob-bin", "aGk="), ("func", "Login")]

    def test_none_is_empty(self):
        assert from_wire_metadata(None) == []
