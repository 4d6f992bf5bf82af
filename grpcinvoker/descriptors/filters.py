# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/descriptors/filters.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Service and method selection.

A selection maps service names to a ``ServiceConfig``. An empty selection
means every service the source lists. Configured methods that the server does
not offer are an error, so a typo in a method name fails loudly instead of
matching nothing.

Examples:
    >>> configs = compute_service_configs(["user.User"], ["payments.Ledger/Post"])
    >>> sorted(configs)
    ['payments.Ledger', 'user.User']
    >>> configs["user.User"].include_service
    True
    >>> configs["payments.Ledger"].include_methods
    {'Post'}
"""

# Standard
import copy
from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

# Third-Party
from google.protobuf.descriptor import MethodDescriptor, ServiceDescriptor

# First-Party
from grpcinvoker.config import REFLECTION_SERVICE_NAMES
from grpcinvoker.descriptors.source import descriptor_kind, DescriptorSource
from grpcinvoker.errors import MethodNameParseError, MethodsNotFoundError, UnexpectedDescriptorError

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Which methods of one service are eligible.

    Attributes:
        include_service: Every method of the service is eligible
        include_methods: Eligible method names when ``include_service`` is false
    """

    include_service: bool = False
    include_methods: Set[str] = field(default_factory=set)


def split_method_name(name: str) -> Tuple[str, str]:
    """Split a method name at the later of the last ``.`` and the last ``/``.

    Args:
        name: ``package.Service.Method`` or ``package.Service/Method``

    Returns:
        Tuple[str, str]: Service name and method name; the service is empty
        when there is no separator

    Examples:
        >>> split_method_name("user.User.Login")
        ('user.User', 'Login')
        >>> split_method_name("user.User/Login")
        ('user.User', 'Login')
        >>> split_method_name("a/b.c")
        ('a/b', 'c')
        >>> split_method_name("Login")
        ('', 'Login')
    """
    pos = max(name.rfind("."), name.rfind("/"))
    if pos < 0:
        return "", name
    return name[:pos], name[pos + 1 :]


def compute_service_configs(services: Iterable[str], methods: Iterable[str]) -> Dict[str, ServiceConfig]:
    """Build a selection from whole services and individual methods.

    Args:
        services: Services whose every method is eligible
        methods: Individual ``service.method`` or ``service/method`` names

    Returns:
        Dict[str, ServiceConfig]: Selection keyed by service name

    Raises:
        MethodNameParseError: If a method name lacks a service or method part

    Examples:
        >>> compute_service_configs([], ["Login"])
        Traceback (most recent call last):
        ...
        grpcinvoker.errors.MethodNameParseError: could not parse name into service and method names: 'Login'
    """
    configs: Dict[str, ServiceConfig] = {}
    for service in services:
        configs.setdefault(service, ServiceConfig()).include_service = True
    for name in methods:
        service, method = split_method_name(name)
        if not service or not method:
            raise MethodNameParseError(name)
        configs.setdefault(service, ServiceConfig()).include_methods.add(method)
    return configs


def get_methods(source: DescriptorSource, configs: Optional[Mapping[str, ServiceConfig]] = None) -> List[MethodDescriptor]:
    """Collect the eligible methods a source offers.

    Args:
        source: Descriptor source of the target server
        configs: Selection; empty or None selects everything

    Returns:
        List[MethodDescriptor]: Eligible methods in service listing order

    Raises:
        UnexpectedDescriptorError: If a listed service resolves to something else
        MethodsNotFoundError: If configured methods are missing
    """
    remaining = copy.deepcopy(dict(configs or {}))
    select_all = not remaining
    found: List[MethodDescriptor] = []

    for service_name in source.list_services():
        if service_name in REFLECTION_SERVICE_NAMES:
            continue
        config = remaining.pop(service_name, None)
        if config is None and not select_all:
            continue

        descriptor = source.find_symbol(service_name)
        if not isinstance(descriptor, ServiceDescriptor):
            raise UnexpectedDescriptorError(service_name, "service", descriptor_kind(descriptor))

        for method in descriptor.methods:
            if config is None:
                found.append(method)
                continue
            named = method.name in config.include_methods
            config.include_methods.discard(method.name)
            if named and config.include_service:
                logger.warning(f"Service {service_name} already configured, so method {method.name} is unnecessary")
            if named or config.include_service:
                found.append(method)

        if config is not None and config.include_methods:
            raise MethodsNotFoundError(f"{service_name}/{method}" for method in config.include_methods)

    # Configured services the server does not list select nothing
    return found
