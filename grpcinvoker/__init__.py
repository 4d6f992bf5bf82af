# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

gRPC Invoker.

Generic gRPC invocation engine: discovers services through server reflection,
turns JSON into dynamic protobuf requests, performs the call and returns the
responses, headers, trailers and status as JSON-friendly data.
"""

__author__ = "gRPC Invoker Contributors"
__copyright__ = "Copyright 2026"
__license__ = "Apache 2.0"
__version__ = "0.3.0"
__description__ = "Reflection-driven generic gRPC invocation engine"
__url__ = "https://github.com/test-instructor/grpc-invoker"
__download_url__ = "https://github.com/test-instructor/grpc-invoker"
__packages__ = ["grpcinvoker"]
