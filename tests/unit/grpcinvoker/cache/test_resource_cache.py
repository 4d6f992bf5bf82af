# -*- coding: utf-8 -*-
"""Location: ./tests/unit/grpcinvoker/cache/test_resource_cache.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Unit tests for ResourceCache.

Covers reuse across callers, single-flight creation under concurrency,
failures not being cached, invalidation and stats.
"""

# Standard
from concurrent.futures import ThreadPoolExecutor
import threading
import time
from unittest.mock import MagicMock

# Third-Party
import pytest

# First-Party
from grpcinvoker.cache.resource_cache import BaseContext, ResourceCache
from grpcinvoker.errors import DialError, DiscoveryError


class _Lifecycles:
    """Lifecycle factory that records every manager it hands out."""

    def __init__(self, list_delay: float = 0.0):
        self.list_delay = list_delay
        self.created = []
        self.list_calls = 0
        self._lock = threading.Lock()

    def __call__(self, host):
        lifecycle = MagicMock()
        lifecycle.open_discovery.return_value.list_services.side_effect = self._list_services
        self.created.append(lifecycle)
        return lifecycle

    def _list_services(self):
        with self._lock:
            self.list_calls += 1
        time.sleep(self.list_delay)
        return ["user.User"]


@pytest.fixture
def fake_dialer():
    dialer = MagicMock()
    dialer.dial.side_effect = lambda host: MagicMock(name=f"channel-{host}")
    return dialer


class TestAcquire:
    def test_reuses_resource(self, fake_dialer):
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles())
        first = cache.acquire("a:1")
        assert cache.acquire("a:1") is first
        assert fake_dialer.dial.call_count == 1
        assert cache.stats() == {"hit_count": 1, "miss_count": 1, "dials": 1, "hosts": 1}

    def test_hosts_are_independent(self, fake_dialer):
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles())
        assert cache.acquire("a:1") is not cache.acquire("b:2")
        assert cache.hosts() == ["a:1", "b:2"]

    def test_concurrent_acquires_dial_and_discover_once(self, fake_dialer):
        lifecycles = _Lifecycles(list_delay=0.1)
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=lifecycles)

        with ThreadPoolExecutor(max_workers=16) as pool:
            resources = list(pool.map(lambda _: cache.acquire("a:1"), range(16)))

        assert all(r is resources[0] for r in resources)
        assert fake_dialer.dial.call_count == 1
        assert lifecycles.list_calls == 1
        assert len(lifecycles.created) == 1

    def test_base_context_reaches_discovery(self, fake_dialer):
        lifecycles = _Lifecycles()
        context = BaseContext(metadata=(("user", "t"),), reflection_metadata=(("x-reflect", "1"),))
        cache = ResourceCache(dialer=fake_dialer, base_context=context, lifecycle_factory=lifecycles)

        resource = cache.acquire("a:1")
        assert resource.base_context is context
        args = lifecycles.created[0].open_discovery.call_args
        assert args.args[1] == (("x-reflect", "1"),)
        assert args.kwargs["target"] == "a:1"

    def test_dial_failure_is_not_cached(self, fake_dialer):
        fake_dialer.dial.side_effect = [DialError("a:1", ConnectionRefusedError()), MagicMock()]
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles())

        with pytest.raises(DialError):
            cache.acquire("a:1")
        assert cache.hosts() == []
        assert cache.acquire("a:1") is not None
        assert fake_dialer.dial.call_count == 2

    def test_discovery_failure_closes_connection(self, fake_dialer):
        lifecycle = MagicMock()
        lifecycle.open_discovery.return_value.list_services.side_effect = DiscoveryError("no reflection")
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=lambda host: lifecycle)

        with pytest.raises(DiscoveryError):
            cache.acquire("a:1")
        lifecycle.close_connection.assert_called_once()
        assert cache.get("a:1") is None


class TestInvalidate:
    def test_invalidate_one_host(self, fake_dialer):
        lifecycles = _Lifecycles()
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=lifecycles)
        cache.acquire("a:1")
        cache.acquire("b:2")

        cache.invalidate("a:1")
        assert cache.hosts() == ["b:2"]
        lifecycles.created[0].close_connection.assert_called_once()
        lifecycles.created[1].close_connection.assert_not_called()

    def test_invalidated_host_is_redialed(self, fake_dialer):
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles())
        first = cache.acquire("a:1")
        cache.invalidate("a:1")
        assert cache.acquire("a:1") is not first
        assert fake_dialer.dial.call_count == 2

    def test_close_evicts_everything(self, fake_dialer):
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles())
        cache.acquire("a:1")
        cache.acquire("b:2")
        cache.close()
        assert cache.hosts() == []

    def test_invalidate_unknown_host_is_noop(self, fake_dialer):
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles())
        cache.invalidate("nowhere:1")
        assert cache.hosts() == []


class TestRegisterProtoset:
    def test_protoset_is_persisted_on_next_acquire(self, fake_dialer):
        lifecycles = _Lifecycles()
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=lifecycles)
        cache.acquire("a:1")

        cache.register_protoset("a:1", "shop.protoset", b"data")
        assert cache.hosts() == []
        cache.acquire("a:1")
        lifecycles.created[1].persist_protoset.assert_called_once_with("shop.protoset", b"data")


class TestLiveDiscovery:
    def test_acquire_demo_host(self, resource_cache, demo_address):
        resource = resource_cache.acquire(demo_address)
        with resource.lifecycle:
            assert resource.descriptor_source.list_services() == ["user.User"]
        assert resource_cache.acquire(demo_address) is resource


class TestConcurrency:
    def test_counters_are_exact_under_contention(self, fake_dialer):
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles())
        cache.acquire("a:1")

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(lambda _: cache.acquire("a:1"), range(1600)))

        assert cache.stats() == {"hit_count": 1600, "miss_count": 1, "dials": 1, "hosts": 1}

    def test_flights_are_released_after_acquire(self, fake_dialer):
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=_Lifecycles(list_delay=0.05))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: cache.acquire(f"h:{i % 4}"), range(32)))

        assert cache._flights == {}
        assert len(cache.hosts()) == 4

    def test_failing_lifecycle_factory_closes_connection(self, fake_dialer):
        channel = MagicMock()
        fake_dialer.dial.side_effect = None
        fake_dialer.dial.return_value = channel

        def factory(host):
            raise RuntimeError("no scratch dir")

        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=factory)
        with pytest.raises(RuntimeError):
            cache.acquire("a:1")
        channel.close.assert_called_once()
        assert cache._flights == {}

    def test_invalidate_during_creation_is_not_undone(self, fake_dialer):
        lifecycles = _Lifecycles(list_delay=0.3)
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=lifecycles)

        with ThreadPoolExecutor(max_workers=1) as pool:
            pending = pool.submit(cache.acquire, "a:1")
            deadline = time.monotonic() + 5
            while lifecycles.list_calls == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
            cache.invalidate("a:1")
            resource = pending.result(timeout=5)

        assert fake_dialer.dial.call_count == 2
        lifecycles.created[0].close_connection.assert_called_once()
        assert resource.lifecycle is lifecycles.created[1]
        assert cache.get("a:1") is resource

    def test_register_protoset_during_creation_reaches_next_resource(self, fake_dialer):
        lifecycles = _Lifecycles(list_delay=0.3)
        cache = ResourceCache(dialer=fake_dialer, base_context=BaseContext(), lifecycle_factory=lifecycles)

        with ThreadPoolExecutor(max_workers=1) as pool:
            pending = pool.submit(cache.acquire, "a:1")
            deadline = time.monotonic() + 5
            while lifecycles.list_calls == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
            cache.register_protoset("a:1", "shop.protoset", b"data")
            resource = pending.result(timeout=5)

        lifecycles.created[0].persist_protoset.assert_not_called()
        resource.lifecycle.persist_protoset.assert_called_once_with("shop.protoset", b"data")
