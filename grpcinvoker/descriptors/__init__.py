# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/descriptors/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Descriptors Package.
Provides schema discovery for remote servers:
- Reflection client
- Descriptor sources (reflection, protoset files, composite)
- Service and method selection
"""
