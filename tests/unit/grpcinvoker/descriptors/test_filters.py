# -*- coding: utf-8 -*-
"""Location: ./tests/unit/grpcinvoker/descriptors/test_filters.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Tests for service and method selection.
"""

# Standard
import logging
from unittest.mock import MagicMock

# Third-Party
import pytest

# First-Party
from grpcinvoker.descriptors.filters import compute_service_configs, get_methods, ServiceConfig, split_method_name
from grpcinvoker.descriptors.source import FileDescriptorSource
from grpcinvoker.errors import MethodNameParseError, MethodsNotFoundError, UnexpectedDescriptorError


@pytest.fixture
def source(shop_file):
    return FileDescriptorSource.from_file_descriptors(shop_file)


def _names(methods):
    return [m.full_name for m in methods]


class TestComputeServiceConfigs:
    def test_services_and_methods_merge(self):
        configs = compute_service_configs(["shop.Cart"], ["shop.Cart.Add", "shop.Orders/Place"])
        assert configs["shop.Cart"] == ServiceConfig(include_service=True, include_methods={"Add"})
        assert configs["shop.Orders"] == ServiceConfig(include_service=False, include_methods={"Place"})

    @pytest.mark.parametrize("name", ["Login", "user.User.", "/Login", ".Login"])
    def test_unparseable_method_names(self, name):
        with pytest.raises(MethodNameParseError):
            compute_service_configs([], [name])

    def test_split_prefers_rightmost_separator(self):
        assert split_method_name("pkg.v1/Svc.Method") == ("pkg.v1/Svc", "Method")


class TestGetMethods:
    def test_empty_selection_returns_everything(self, source):
        assert _names(get_methods(source)) == ["shop.Cart.Add", "shop.Cart.Remove", "shop.Cart.Watch", "shop.Cart.Sync", "shop.Orders.Place"]

    def test_whole_service(self, source):
        configs = compute_service_configs(["shop.Orders"], [])
        assert _names(get_methods(source, configs)) == ["shop.Orders.Place"]

    def test_single_method_is_exact(self, source):
        configs = compute_service_configs([], ["shop.Cart.Remove"])
        assert _names(get_methods(source, configs)) == ["shop.Cart.Remove"]

    def test_missing_method_raises(self, source):
        configs = compute_service_configs([], ["shop.Cart.Add", "shop.Cart.Checkout"])
        with pytest.raises(MethodsNotFoundError) as excinfo:
            get_methods(source, configs)
        assert excinfo.value.missing == ["shop.Cart/Checkout"]

    def test_missing_method_raises_even_with_whole_service(self, source):
        configs = compute_service_configs(["shop.Cart"], ["shop.Cart/Checkout"])
        with pytest.raises(MethodsNotFoundError):
            get_methods(source, configs)

    def test_unlisted_service_selects_nothing(self, source):
        configs = compute_service_configs([], ["acme.Missing.Call"])
        assert get_methods(source, configs) == []

    def test_redundant_method_warns(self, source, caplog):
        configs = compute_service_configs(["shop.Orders"], ["shop.Orders.Place"])
        with caplog.at_level(logging.WARNING, logger="grpcinvoker.descriptors.filters"):
            methods = get_methods(source, configs)
        assert _names(methods) == ["shop.Orders.Place"]
        assert "Service shop.Orders already configured, so method Place is unnecessary" in caplog.text

    def test_selection_is_not_mutated(self, source):
        configs = compute_service_configs([], ["shop.Cart.Add"])
        get_methods(source, configs)
        get_methods(source, configs)
        assert configs["shop.Cart"].include_methods == {"Add"}

    def test_reflection_service_is_skipped(self, shop_file):
        inner = FileDescriptorSource.from_file_descriptors(shop_file)
        source = MagicMock()
        source.list_services.return_value = ["grpc.reflection.v1alpha.ServerReflection", "shop.Orders"]
        source.find_symbol.side_effect = inner.find_symbol

        assert _names(get_methods(source)) == ["shop.Orders.Place"]
        source.find_symbol.assert_called_once_with("shop.Orders")

    def test_listed_name_that_is_not_a_service(self, shop_file):
        inner = FileDescriptorSource.from_file_descriptors(shop_file)
        source = MagicMock()
        source.list_services.return_value = ["shop.Item"]
        source.find_symbol.side_effect = inner.find_symbol

        with pytest.raises(UnexpectedDescriptorError) as excinfo:
            get_methods(source)
        assert str(excinfo.value) == "shop.Item should be a service descriptor but instead is a message"
