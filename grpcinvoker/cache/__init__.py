# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/cache/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Cache Package.
Provides the per-host connection and descriptor cache.
"""
