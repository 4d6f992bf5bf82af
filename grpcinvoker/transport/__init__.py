# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/transport/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Transport Package.
Provides channel dialing with connection error attribution.
"""
