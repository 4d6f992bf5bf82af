# -*- coding: utf-8 -*-
"""Location: ./tests/unit/grpcinvoker/demo/test_demo_server.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Tests for the demo user store and ranking weights.
"""

# Standard
import time

# First-Party
from grpcinvoker.demo import user_pb
from grpcinvoker.demo.server import User, UserStore


class TestUserStore:
    def test_ids_increase(self):
        store = UserStore()
        assert [store.register(n, "pw", 0).id for n in ("a", "b", "c")] == [1, 2, 3]

    def test_login_rotates_token(self):
        store = UserStore()
        store.register("a", "pw", 0)
        first = store.login("a", "pw").token
        second = store.login("a", "pw").token
        assert len(first) == 32 and first != second

    def test_bad_credentials(self):
        store = UserStore()
        store.register("a", "pw", 0)
        assert store.login("a", "bad") is None
        assert store.login("ghost", "pw") is None

    def test_authenticate(self):
        store = UserStore()
        user = store.register("a", "pw", 0)
        token = store.login("a", "pw").token
        assert store.authenticate(str(user.id), token) is user
        assert store.authenticate(str(user.id), "x" * 32) is None
        assert store.authenticate("abc", token) is None
        assert store.authenticate(str(user.id), "") is None

    def test_ranking(self):
        store = UserStore()
        store.register("m", "pw", 0)
        female = store.register("f", "pw", 1)
        store.add_picture(female, "/tmp/a.png")
        store.add_picture(female, "/tmp/b.png")

        rows = store.ranked()
        assert [r["UserName"] for r in rows] == ["m", "f"]
        assert rows[1]["W"] == 200 + 100 + 100
        assert [r["UserName"] for r in store.ranked(descending=True)] == ["f", "m"]


class TestWeights:
    def test_recent_registration_bonus_expires(self):
        user = User(id=1, user_name="a", password="p", register_time=time.time())
        assert user.weights()["T"] == 100
        assert user.weights(now=user.register_time + 31)["T"] == 3


class TestUserProto:
    def test_methods_resolve(self):
        service = user_pb.POOL.FindServiceByName(user_pb.SERVICE_NAME)
        assert [m.name for m in service.methods] == list(user_pb.METHODS)
        assert user_pb.FILE.name == "user.proto"
