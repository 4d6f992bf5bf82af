# -*- coding: utf-8 -*-
"""Location: ./tests/unit/grpcinvoker/services/test_grpc_service.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Tests for the async gRPC service facade.
"""

# Standard
from unittest.mock import MagicMock

# Third-Party
import orjson
import pytest

# First-Party
from grpcinvoker.errors import DialError, MethodNotFoundError
from grpcinvoker.models import InvocationResult
from grpcinvoker.services.grpc_service import GrpcService, GrpcServiceError


class TestGrpcService:
    """Test suite for the async facade."""

    @pytest.fixture
    def invoker(self):
        """Mock invoker."""
        invoker = MagicMock()
        invoker.invoke.return_value = InvocationResult()
        return invoker

    @pytest.fixture
    def service(self, invoker):
        """Service over the mock invoker."""
        return GrpcService(invoker)

    async def test_invoke_method_builds_request(self, service, invoker):
        await service.invoke_method("h:1", "user.User.Login", {"UserName": "u"}, metadata=[("token", "t")], timeout_seconds=2)

        request = invoker.invoke.call_args.args[0]
        assert request.host == "h:1"
        assert request.method == "user.User.Login"
        assert orjson.loads(request.read_body()) == {"UserName": "u"}
        assert request.metadata == (("token", "t"),)
        assert request.deadline == 2

    async def test_invoke_method_without_data_sends_empty_object(self, service, invoker):
        await service.invoke_method("h:1", "user.User.UserInfo")
        assert invoker.invoke.call_args.args[0].read_body() == b"{}"

    async def test_typed_errors_propagate(self, service, invoker):
        invoker.invoke.side_effect = MethodNotFoundError("user.User.Nope", "h:1")
        with pytest.raises(MethodNotFoundError):
            await service.invoke_method("h:1", "user.User.Nope")

        invoker.list_services.side_effect = DialError("h:1", ConnectionRefusedError())
        with pytest.raises(DialError):
            await service.list_services("h:1")

    async def test_unexpected_errors_are_wrapped(self, service, invoker):
        invoker.describe.side_effect = RuntimeError("pool corrupted")
        with pytest.raises(GrpcServiceError, match="Failed to describe user.LoginReq on h:1: pool corrupted"):
            await service.describe("h:1", "user.LoginReq")

    async def test_discovery_delegates(self, service, invoker):
        invoker.list_methods.return_value = ["Login"]
        assert await service.list_methods("h:1", "user.User") == ["Login"]
        await service.get_request_schema("h:1", "user.User", "Login")
        invoker.get_request_schema.assert_called_once_with("h:1", "user.User", "Login")

    async def test_register_protoset_and_reset(self, service, invoker):
        await service.register_protoset("h:1", "api.protoset", b"\x0a")
        invoker.cache.register_protoset.assert_called_once_with("h:1", "api.protoset", b"\x0a")
        await service.reset("h:1")
        invoker.reset.assert_called_once_with("h:1")

    async def test_shutdown_closes_cache(self, service, invoker):
        await service.shutdown()
        invoker.cache.close.assert_called_once()


class TestGrpcServiceLive:
    async def test_register_through_facade(self, invoker, demo_address, user_name):
        service = GrpcService(invoker)
        result = await service.invoke_method(demo_address, "user.User.RegisterUser", {"UserName": user_name, "Password": "pw"})
        assert result.ok
        assert result.responses[0].as_object()["UserName"] == user_name
