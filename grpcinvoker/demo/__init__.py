# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/demo/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Demo Package.
A reflection-enabled ``user.User`` server used as a live invocation target.
"""
