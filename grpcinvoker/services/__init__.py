# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/services/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Services Package.
Exposes the invocation engine:
- Invoker pipeline and discovery queries
- Resource lifecycle management
- Async gRPC service facade
- Logging
"""
