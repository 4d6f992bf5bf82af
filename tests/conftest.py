# -*- coding: utf-8 -*-
"""Location: ./tests/conftest.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Shared fixtures: a live demo server and invokers wired to private caches.
"""

# Standard
import uuid

# Third-Party
import pytest

# First-Party
from grpcinvoker.cache.resource_cache import BaseContext, ResourceCache
from grpcinvoker.demo.server import DemoServer
from grpcinvoker.services.invoker import Invoker
from grpcinvoker.transport.dialer import Dialer


@pytest.fixture(scope="session")
def demo_server():
    """Start the demo user service on a free port for the whole session."""
    server = DemoServer(port=0).start()
    yield server
    server.stop(grace=None)


@pytest.fixture
def demo_address(demo_server):
    """Address of the running demo service."""
    return demo_server.address


@pytest.fixture
def dialer():
    """Plaintext fail-fast dialer with a short timeout."""
    return Dialer(fail_fast=True, timeout=5.0)


@pytest.fixture
def resource_cache(dialer):
    """Empty cache that owns its connections and scratch space."""
    cache = ResourceCache(dialer=dialer, base_context=BaseContext())
    yield cache
    cache.close()


@pytest.fixture
def invoker(resource_cache):
    """Invoker over the private cache."""
    return Invoker(cache=resource_cache)


@pytest.fixture
def user_name():
    """A user name no other test has registered."""
    return f"user-{uuid.uuid4().hex[:12]}"
