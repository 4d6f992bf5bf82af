# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/services/invoker.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Generic gRPC invocation.

Calls any method of any reflection-enabled server without generated stubs:
the method is resolved through the host's descriptor source, the JSON body is
decoded against the request descriptor, the call is made with the matching
cardinality, and responses come back as JSON with headers, trailers and the
final status.

Local failures (dialing, discovery, unknown methods, bad JSON) raise. A call
the server rejects does not: its status lands in ``InvocationResult.error``
together with any responses that arrived first.
"""

# Standard
import base64
import time
from typing import Any, Iterable, List, Optional, Tuple

# Third-Party
from google.protobuf import any_pb2, descriptor_pb2, descriptor_pool, message_factory, text_format
from google.protobuf.descriptor import Descriptor, EnumDescriptor, FieldDescriptor, FileDescriptor, MethodDescriptor, ServiceDescriptor
from google.rpc import error_details_pb2  # noqa: F401  pylint: disable=unused-import
import grpc
from grpc_status import rpc_status
import orjson

# First-Party
from grpcinvoker.cache.resource_cache import HostResource, resource_cache, ResourceCache
from grpcinvoker.codec import decode_request, encode_message
from grpcinvoker.config import REFLECTION_SERVICE_NAMES
from grpcinvoker.descriptors.filters import compute_service_configs, get_methods
from grpcinvoker.descriptors.source import descriptor_kind, DescriptorSource, FileDescriptorSource
from grpcinvoker.errors import DiscoveryError, MethodNotFoundError, UnexpectedDescriptorError
from grpcinvoker.models import InvocationRequest, InvocationResult, RpcErrorDetail, RpcErrorInfo, RpcMetadata, RpcResponse
from grpcinvoker.schemas import gather_method_schema, make_template, MethodSchema, SymbolDescription
from grpcinvoker.services.logging_service import LoggingService
from grpcinvoker.utils.metadata import from_wire_metadata, to_wire_metadata

# Initialize logging
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)


def _metadata_models(metadata: Optional[Iterable[Tuple[str, Any]]]) -> List[RpcMetadata]:
    return [RpcMetadata(name=k, value=v) for k, v in from_wire_metadata(metadata)]


def _descriptor_text(descriptor: Any) -> str:
    """Render a descriptor as its descriptor proto in text format.

    Args:
        descriptor: Any protobuf descriptor

    Returns:
        str: Text format of the matching ``descriptor_pb2`` message

    Examples:
        >>> from google.protobuf import duration_pb2
        >>> print(_descriptor_text(duration_pb2.Duration.DESCRIPTOR).splitlines()[0])
        name: "Duration"
    """
    if isinstance(descriptor, FieldDescriptor):
        # Fields are rendered from the proto of whatever declares them
        if not descriptor.is_extension:
            container = descriptor_pb2.DescriptorProto()
            descriptor.containing_type.CopyToProto(container)
            fields = container.field
        elif descriptor.extension_scope is not None:
            container = descriptor_pb2.DescriptorProto()
            descriptor.extension_scope.CopyToProto(container)
            fields = container.extension
        else:
            file_proto = descriptor_pb2.FileDescriptorProto()
            descriptor.file.CopyToProto(file_proto)
            fields = file_proto.extension
        proto = next((f for f in fields if f.name == descriptor.name), descriptor_pb2.FieldDescriptorProto(name=descriptor.name))
        return text_format.MessageToString(proto)

    protos = {
        Descriptor: descriptor_pb2.DescriptorProto,
        EnumDescriptor: descriptor_pb2.EnumDescriptorProto,
        ServiceDescriptor: descriptor_pb2.ServiceDescriptorProto,
        MethodDescriptor: descriptor_pb2.MethodDescriptorProto,
        FileDescriptor: descriptor_pb2.FileDescriptorProto,
    }
    for kind, proto_cls in protos.items():
        if isinstance(descriptor, kind):
            proto = proto_cls()
            descriptor.CopyToProto(proto)
            return text_format.MessageToString(proto)
    # Enum values have no proto of their own
    return f"{descriptor.name} = {descriptor.number};\n"


def _render_detail(detail: any_pb2.Any, sources: List[DescriptorSource]) -> RpcErrorDetail:
    """Render one status detail as JSON.

    The detail type is looked up in each source in turn, then among the
    types linked into this process (``google.rpc`` error details included).

    Args:
        detail: Packed detail
        sources: Descriptor sources tried in order

    Returns:
        RpcErrorDetail: Decoded detail, or the raw payload when its type is unknown

    Examples:
        >>> from google.protobuf import any_pb2
        >>> from google.rpc import error_details_pb2
        >>> packed = any_pb2.Any()
        >>> packed.Pack(error_details_pb2.ErrorInfo(reason="QUOTA"))
        >>> _render_detail(packed, []).detail["reason"]
        'QUOTA'
        >>> unknown = any_pb2.Any(type_url="type.googleapis.com/acme.Secret", value=b"\\x01")
        >>> _render_detail(unknown, []).detail
        {'@type': 'type.googleapis.com/acme.Secret', 'value': 'AQ=='}
    """
    type_name = detail.type_url.rsplit("/", 1)[-1]
    descriptor = None
    for source in sources:
        try:
            found = source.find_symbol(type_name)
        except DiscoveryError:
            continue
        if isinstance(found, Descriptor):
            descriptor = found
            break
    if descriptor is None:
        try:
            descriptor = descriptor_pool.Default().FindMessageTypeByName(type_name)
        except KeyError:
            return RpcErrorDetail(name=type_name, detail={"@type": detail.type_url, "value": base64.b64encode(detail.value).decode("ascii")})

    message = message_factory.GetMessageClass(descriptor)()
    message.ParseFromString(detail.value)
    return RpcErrorDetail(name=type_name, detail=encode_message(message, descriptor.file.pool))


class Invoker:
    """Invokes methods and answers discovery queries for any host.

    Examples:
        >>> from unittest.mock import MagicMock
        >>> invoker = Invoker(cache=MagicMock())
        >>> invoker.reset("127.0.0.1:40061")
        >>> invoker.cache.invalidate.call_args.args
        ('127.0.0.1:40061',)
    """

    def __init__(self, cache: Optional[ResourceCache] = None):
        """Initialize the invoker.

        Args:
            cache: Resource cache, defaults to the shared ``resource_cache``
        """
        self.cache = cache if cache is not None else resource_cache

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def invoke(self, request: InvocationRequest) -> InvocationResult:
        """Invoke one method.

        Args:
            request: The call to make

        Returns:
            InvocationResult: Headers, responses, trailers and status

        Raises:
            DialError: If the host cannot be reached
            DiscoveryError: If the host's descriptors cannot be obtained
            MethodNotFoundError: If the host does not offer the method
            MethodsNotFoundError: If the service exists but lacks the method
            CodecError: If the body does not fit the request message
        """
        resource = self.cache.acquire(request.host)
        method = self._resolve_method(resource, request.method)

        # Lookups past this point stay inside the method's own file graph
        scoped = FileDescriptorSource.from_file_descriptors(method.containing_service.file)
        messages = decode_request(method.input_type, request.read_body(), streaming=method.client_streaming, pool=method.containing_service.file.pool)
        metadata = to_wire_metadata(request.metadata or resource.base_context.metadata)

        start = time.monotonic()
        result = self._call(resource, method, messages, metadata, request.deadline, scoped)
        result.elapsed_ms = (time.monotonic() - start) * 1000

        if result.error is None:
            logger.info(f"Invoked {method.full_name} on {request.host}: {len(result.responses)} response(s) in {result.elapsed_ms:.1f}ms")
        else:
            logger.info(f"Invoked {method.full_name} on {request.host}: {result.error.name} in {result.elapsed_ms:.1f}ms")
        return result

    def _resolve_method(self, resource: HostResource, name: str) -> MethodDescriptor:
        """Find the requested method among the ones the host offers.

        Args:
            resource: Host resource
            name: ``package.Service.Method`` or ``package.Service/Method``

        Returns:
            MethodDescriptor: The method

        Raises:
            MethodNotFoundError: If nothing matches
        """
        configs = compute_service_configs([], [name])
        with resource.lifecycle:
            methods = get_methods(resource.descriptor_source, configs)
        wanted = name.replace("/", ".")
        for method in methods:
            if method.full_name == wanted:
                return method
        raise MethodNotFoundError(name, resource.host)

    def _call(
        self,
        resource: HostResource,
        method: MethodDescriptor,
        messages: List[Any],
        metadata: Tuple[Tuple[str, Any], ...],
        timeout: Optional[float],
        scoped: DescriptorSource,
    ) -> InvocationResult:
        """Make the call with the method's cardinality.

        Args:
            resource: Host resource
            method: Method to call
            messages: Request messages in send order
            metadata: Wire metadata
            timeout: Deadline in seconds, None for none
            scoped: Source over the method's own file graph

        Returns:
            InvocationResult: Outcome without timing
        """
        path = f"/{method.containing_service.full_name}/{method.name}"
        response_cls = message_factory.GetMessageClass(method.output_type)
        kwargs = {"request_serializer": lambda m: m.SerializeToString(), "response_deserializer": response_cls.FromString}
        channel = resource.connection
        pool = method.containing_service.file.pool
        result = InvocationResult()

        if not method.client_streaming and not method.server_streaming:
            call = channel.unary_unary(path, **kwargs).future(messages[0], timeout=timeout, metadata=metadata)
            streamed = False
        elif method.client_streaming and not method.server_streaming:
            call = channel.stream_unary(path, **kwargs).future(iter(messages), timeout=timeout, metadata=metadata)
            streamed = False
        elif method.server_streaming and not method.client_streaming:
            call = channel.unary_stream(path, **kwargs)(messages[0], timeout=timeout, metadata=metadata)
            streamed = True
        else:
            call = channel.stream_stream(path, **kwargs)(iter(messages), timeout=timeout, metadata=metadata)
            streamed = True

        try:
            result.headers = _metadata_models(call.initial_metadata())
            received = call if streamed else [call.result()]
            for response in received:
                result.responses.append(RpcResponse(data=orjson.dumps(encode_message(response, pool))))
        except grpc.RpcError:
            with resource.lifecycle:
                result.error = self._status_error(call, [scoped, resource.descriptor_source])
        result.trailers = _metadata_models(call.trailing_metadata())
        return result

    def _status_error(self, call: grpc.Call, sources: List[DescriptorSource]) -> RpcErrorInfo:
        """Describe a non-OK call status.

        Args:
            call: The finished call
            sources: Descriptor sources tried in order for detail types

        Returns:
            RpcErrorInfo: Status name, code, message and details
        """
        code = call.code()
        details: List[RpcErrorDetail] = []
        try:
            status = rpc_status.from_call(call)
        except ValueError as e:
            logger.warning(f"Ignoring malformed status details: {e}")
            status = None
        if status is not None:
            details = [_render_detail(detail, sources) for detail in status.details]
        return RpcErrorInfo(name=code.name, code=code.value[0], message=call.details() or "", details=details)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def list_services(self, host: str) -> List[str]:
        """List the services a host offers.

        Args:
            host: Target address

        Returns:
            List[str]: Service names, reflection services excluded

        Raises:
            DiscoveryError: If the host lists no services
        """
        resource = self.cache.acquire(host)
        with resource.lifecycle:
            services = [s for s in resource.descriptor_source.list_services() if s not in REFLECTION_SERVICE_NAMES]
        if not services:
            raise DiscoveryError(f"no services on {host}")
        return services

    def _find_service(self, resource: HostResource, service: str) -> ServiceDescriptor:
        descriptor = resource.descriptor_source.find_symbol(service)
        if not isinstance(descriptor, ServiceDescriptor):
            raise UnexpectedDescriptorError(service, "service", descriptor_kind(descriptor))
        return descriptor

    def list_methods(self, host: str, service: str) -> List[str]:
        """List the methods of one service.

        Args:
            host: Target address
            service: Fully-qualified service name

        Returns:
            List[str]: Method names

        Raises:
            UnexpectedDescriptorError: If the symbol is not a service
            DiscoveryError: If the service has no methods
        """
        resource = self.cache.acquire(host)
        with resource.lifecycle:
            methods = [m.name for m in self._find_service(resource, service).methods]
        if not methods:
            raise DiscoveryError(f"no methods in {service} on {host}")
        return methods

    def describe(self, host: str, symbol: str) -> SymbolDescription:
        """Describe any symbol the host knows.

        Args:
            host: Target address
            symbol: Fully-qualified symbol name

        Returns:
            SymbolDescription: Kind, name, descriptor text and, for messages, a JSON template

        Raises:
            SymbolNotFoundError: If the symbol is unknown
        """
        resource = self.cache.acquire(host)
        with resource.lifecycle:
            descriptor = resource.descriptor_source.find_symbol(symbol)
            kind = descriptor_kind(descriptor)
            return SymbolDescription(
                kind=kind,
                full_name=getattr(descriptor, "full_name", None) or descriptor.name,
                text=_descriptor_text(descriptor),
                template=make_template(descriptor) if kind == "message" else None,
            )

    def get_request_schema(self, host: str, service: str, method: str) -> MethodSchema:
        """Describe the request of one method.

        Args:
            host: Target address
            service: Fully-qualified service name
            method: Method name

        Returns:
            MethodSchema: Request schema

        Raises:
            MethodNotFoundError: If the service lacks the method
        """
        resource = self.cache.acquire(host)
        with resource.lifecycle:
            descriptor = self._find_service(resource, service)
            for candidate in descriptor.methods:
                if candidate.name == method:
                    return gather_method_schema(candidate)
        raise MethodNotFoundError(f"{service}.{method}", host)

    def reset(self, host: str) -> None:
        """Forget a host so the next call redials and rediscovers.

        Args:
            host: Target address
        """
        self.cache.invalidate(host)
        logger.info(f"Reset resources for {host}")
