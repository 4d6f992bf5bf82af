# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/utils/__init__.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Utilities Package.
Shared helpers: pydantic base model, reader/writer lock, call metadata.
"""
