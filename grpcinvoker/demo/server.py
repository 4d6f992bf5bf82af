# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/demo/server.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Demo user service.

A small in-memory ``user.User`` server with reflection enabled. It exists to
give the invoker a live target: registration, login with session tokens,
metadata-authenticated calls, an upload, a ranked listing and one method
that is deliberately unimplemented.
"""

# Standard
from concurrent import futures
from dataclasses import dataclass, field
import logging
import os
import secrets
import string
import tempfile
import threading
import time
from typing import Dict, List, Optional

# Third-Party
import grpc
from grpc_reflection.v1alpha import reflection

# First-Party
from grpcinvoker.demo import user_pb

logger = logging.getLogger(__name__)

DEFAULT_PORT = 40061
TOKEN_LENGTH = 32
_TOKEN_CHARS = string.ascii_letters + string.digits

SEX_FEMALE = 1
IMG_SUFFIXES = {0: ".jpg", 1: ".png"}
SORT_DESC = 1


def random_token(length: int = TOKEN_LENGTH) -> str:
    """Generate an alphanumeric token.

    Args:
        length: Number of characters

    Returns:
        str: The token

    Examples:
        >>> token = random_token()
        >>> len(token), token.isalnum()
        (32, True)
    """
    return "".join(secrets.choice(_TOKEN_CHARS) for _ in range(length))


@dataclass
class User:
    """A registered user."""

    id: int
    user_name: str
    password: str
    sex: int = 0
    register_time: float = field(default_factory=time.time)
    picture: str = ""
    picture_num: int = 0
    token: str = ""

    def weights(self, now: Optional[float] = None) -> Dict[str, int]:
        """Compute the ranking weights of the user.

        Args:
            now: Current time, defaults to ``time.time()``

        Returns:
            Dict[str, int]: ``G`` (sex), ``T`` (recency), ``A`` (activity) and their sum ``W``

        Examples:
            >>> User(id=1, user_name="a", password="p", sex=1, register_time=0).weights(now=100)
            {'G': 200, 'T': 3, 'A': 1, 'W': 204}
        """
        now = time.time() if now is None else now
        g = 200 if self.sex == SEX_FEMALE else 100
        t = 100 if now - self.register_time < 30 else 3
        a = 100 if self.picture_num >= 2 else 1
        return {"G": g, "T": t, "A": a, "W": g + t + a}


class UserStore:
    """Thread-safe in-memory user table.

    Examples:
        >>> store = UserStore()
        >>> store.register("alice", "pw", 0).id
        1
        >>> store.register("alice", "pw", 0) is None
        True
    """

    def __init__(self):
        """Initialize an empty store."""
        self._lock = threading.Lock()
        self._users: Dict[int, User] = {}
        self._by_name: Dict[str, int] = {}
        self._next_id = 0

    def register(self, user_name: str, password: str, sex: int) -> Optional[User]:
        """Add a user unless the name is taken.

        Args:
            user_name: Unique name
            password: Password
            sex: ``UserSex`` value

        Returns:
            Optional[User]: The new user, None if the name exists
        """
        with self._lock:
            if user_name in self._by_name:
                return None
            self._next_id += 1
            user = User(id=self._next_id, user_name=user_name, password=password, sex=sex)
            self._users[user.id] = user
            self._by_name[user_name] = user.id
            return user

    def login(self, user_name: str, password: str) -> Optional[User]:
        """Check credentials and issue a fresh token.

        Args:
            user_name: Name
            password: Password

        Returns:
            Optional[User]: The user with a new token, None on bad credentials
        """
        with self._lock:
            user = self._users.get(self._by_name.get(user_name, 0))
            if user is None or user.password != password:
                return None
            user.token = random_token()
            return user

    def authenticate(self, user_id: str, token: str) -> Optional[User]:
        """Look up a logged-in user.

        Args:
            user_id: ID from call metadata
            token: Token from call metadata

        Returns:
            Optional[User]: The user, None if the token does not match
        """
        if not user_id.isdigit() or not token:
            return None
        with self._lock:
            user = self._users.get(int(user_id))
            if user is None or not secrets.compare_digest(user.token, token):
                return None
            return user

    def add_picture(self, user: User, path: str) -> None:
        """Record an uploaded picture.

        Args:
            user: Uploader
            path: Stored file path
        """
        with self._lock:
            user.picture = path
            user.picture_num += 1

    def ranked(self, descending: bool = False) -> List[Dict[str, int]]:
        """List users ordered by weight.

        Args:
            descending: Highest weight first

        Returns:
            List[Dict[str, int]]: ``UserSimple`` field values
        """
        now = time.time()
        with self._lock:
            rows = [{"ID": u.id, "UserName": u.user_name, "Sex": u.sex, **u.weights(now)} for u in self._users.values()]
        return sorted(rows, key=lambda row: row["W"], reverse=descending)


def _metadata_value(context: grpc.ServicerContext, key: str) -> str:
    for name, value in context.invocation_metadata():
        if name == key:
            return value
    return ""


class UserServicer:
    """Implements ``user.User`` on top of a ``UserStore``."""

    def __init__(self, store: Optional[UserStore] = None, image_dir: Optional[str] = None):
        """Initialize the servicer.

        Args:
            store: User table, a fresh one by default
            image_dir: Where uploads are written, a temporary directory by default
        """
        self.store = store or UserStore()
        self.image_dir = image_dir or tempfile.mkdtemp(prefix="grpcinvoker-demo-img-")

    def _logged_in(self, context: grpc.ServicerContext) -> User:
        user = self.store.authenticate(_metadata_value(context, "id"), _metadata_value(context, "token"))
        if user is None:
            context.abort(grpc.StatusCode.UNAUTHENTICATED, "not logged in")
        return user

    def RegisterUser(self, request, context):  # pylint: disable=invalid-name
        context.send_initial_metadata((("username", request.UserName),))
        user = self.store.register(request.UserName, request.Password, request.Sex)
        if user is None:
            context.abort(grpc.StatusCode.ALREADY_EXISTS, "user name already exists, please choose another one")
        logger.info(f"Registered user {user.user_name} ({user.id})")
        return user_pb.message_class("user.RegisterUserResp")(ID=user.id, UserName=user.user_name)

    def Login(self, request, context):  # pylint: disable=invalid-name
        context.send_initial_metadata((("username", request.UserName), ("func", "Login")))
        if not request.UserName:
            context.abort(grpc.StatusCode.NOT_FOUND, "user does not exist")
        user = self.store.login(request.UserName, request.Password)
        if user is None:
            context.abort(grpc.StatusCode.UNAUTHENTICATED, "user name or password is incorrect")
        return user_pb.message_class("user.LoginResp")(ID=user.id, UserName=user.user_name, Token=user.token)

    def UserInfo(self, request, context):  # pylint: disable=invalid-name,unused-argument
        user = self._logged_in(context)
        return user_pb.message_class("user.UserInfoResp")(ID=user.id, UserName=user.user_name)

    def UploadImg(self, request, context):  # pylint: disable=invalid-name
        user = self._logged_in(context)
        suffix = IMG_SUFFIXES.get(request.FileType)
        if suffix is None:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, "unsupported file type")
        path = os.path.join(self.image_dir, random_token(20) + suffix)
        with open(path, "wb") as f:
            f.write(request.Img)
        self.store.add_picture(user, path)
        return user_pb.message_class("user.UploadImgResp")(Message=path)

    def GetUserList(self, request, context):  # pylint: disable=invalid-name,unused-argument
        response = user_pb.message_class("user.GetUserListResp")()
        for row in self.store.ranked(descending=request.Sort == SORT_DESC):
            response.UserInfo.add(**row)
        return response

    def Cancellation(self, request, context):  # pylint: disable=invalid-name,unused-argument
        context.abort(grpc.StatusCode.UNIMPLEMENTED, "method Cancellation not implemented")


def _handlers(servicer: UserServicer) -> grpc.GenericRpcHandler:
    handlers = {}
    for method, (request, _) in user_pb.METHODS.items():
        request_cls = user_pb.message_class(f"{user_pb.PACKAGE}.{request}")
        handlers[method] = grpc.unary_unary_rpc_method_handler(
            getattr(servicer, method),
            request_deserializer=request_cls.FromString,
            response_serializer=lambda m: m.SerializeToString(),
        )
    return grpc.method_handlers_generic_handler(user_pb.SERVICE_NAME, handlers)


class DemoServer:
    """Runs the demo service with reflection on a local port.

    Attributes:
        port: Bound port, known after ``start()``
    """

    def __init__(self, port: int = DEFAULT_PORT, host: str = "127.0.0.1", servicer: Optional[UserServicer] = None, max_workers: int = 10):
        """Initialize the server.

        Args:
            port: Port to bind, 0 picks a free one
            host: Interface to bind
            servicer: Service implementation, a fresh one by default
            max_workers: Handler thread count
        """
        self.host = host
        self.port = port
        self.servicer = servicer or UserServicer()
        self._server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers))
        self._server.add_generic_rpc_handlers((_handlers(self.servicer),))
        reflection.enable_server_reflection((user_pb.SERVICE_NAME, reflection.SERVICE_NAME), self._server, pool=user_pb.POOL)

    @property
    def address(self) -> str:
        """``host:port`` of the running server."""
        return f"{self.host}:{self.port}"

    def start(self) -> "DemoServer":
        """Bind and start serving.

        Returns:
            DemoServer: self

        Raises:
            RuntimeError: If the port cannot be bound
        """
        bound = self._server.add_insecure_port(f"{self.host}:{self.port}")
        if not bound:
            raise RuntimeError(f"failed to bind {self.host}:{self.port}")
        self.port = bound
        self._server.start()
        logger.info(f"Demo user service listening on {self.address}")
        return self

    def stop(self, grace: Optional[float] = None) -> None:
        """Stop serving.

        Args:
            grace: Seconds in-flight calls may finish in
        """
        self._server.stop(grace).wait()
        logger.info("Demo user service stopped")

    def wait(self) -> None:
        """Block until the server terminates."""
        self._server.wait_for_termination()
