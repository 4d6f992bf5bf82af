# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/transport/dialer.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Channel dialing.

gRPC channels connect lazily and report failures only as connectivity state
changes, so the dialer waits for readiness itself. Two modes:

- fail-fast: the first TRANSIENT_FAILURE aborts the dial.
- error-tracking: transient failures are ridden out until the dial timeout,
  but every failure is diagnosed so the final error is useful.

Diagnosis replays the connection outside of gRPC with an error-tracking
network dialer and, for TLS targets, error-tracking credentials. Each keeps
the last error it saw. The reported cause prefers the handshake error, then
the raw dial error, then the generic timeout.

Examples:
    >>> split_address("127.0.0.1:40061")
    ('127.0.0.1', 40061)
    >>> split_address("[::1]:50051")
    ('::1', 50051)
    >>> split_address("dns:///example.com:8443")
    ('example.com', 8443)
    >>> split_address("example.com", secure=True)
    ('example.com', 443)
"""

# Standard
from dataclasses import dataclass
import logging
import os
import socket
import ssl
import tempfile
import threading
import time
from typing import List, Optional, Sequence, Tuple

# Third-Party
import grpc

# First-Party
from grpcinvoker.config import settings
from grpcinvoker.errors import DialError

logger = logging.getLogger(__name__)

ChannelOptions = List[Tuple[str, object]]

_FAILED_STATES = (grpc.ChannelConnectivity.TRANSIENT_FAILURE, grpc.ChannelConnectivity.SHUTDOWN)


def split_address(address: str, secure: bool = False) -> Tuple[str, int]:
    """Split a dial target into host and port.

    Args:
        address: ``host:port``, ``[v6]:port`` or ``dns:///host:port``
        secure: Whether the default port should be the TLS one

    Returns:
        Tuple[str, int]: Host and port

    Raises:
        ValueError: If the port is not numeric

    Examples:
        >>> split_address("localhost:abc")
        Traceback (most recent call last):
        ...
        ValueError: invalid port in address 'localhost:abc'
    """
    target = address
    for prefix in ("dns:///", "ipv4:", "ipv6:"):
        if target.startswith(prefix):
            target = target[len(prefix) :]
    default_port = 443 if secure else 80

    if target.startswith("["):
        host, _, rest = target[1:].partition("]")
        port_text = rest[1:] if rest.startswith(":") else ""
    elif target.count(":") == 1:
        host, _, port_text = target.partition(":")
    else:
        host, port_text = target, ""

    if not port_text:
        return host, default_port
    if not port_text.isdigit():
        raise ValueError(f"invalid port in address {address!r}")
    return host, int(port_text)


@dataclass(frozen=True)
class TransportCredentials:
    """TLS material for a secure channel.

    Attributes:
        root_certificates: PEM-encoded CA bundle, None for the system roots
        private_key: PEM-encoded client key for mutual TLS
        certificate_chain: PEM-encoded client certificate chain for mutual TLS
        server_name_override: Name to verify instead of the dialed host
    """

    root_certificates: Optional[bytes] = None
    private_key: Optional[bytes] = None
    certificate_chain: Optional[bytes] = None
    server_name_override: Optional[str] = None

    def channel_credentials(self) -> grpc.ChannelCredentials:
        """Build the gRPC channel credentials.

        Returns:
            grpc.ChannelCredentials: Credentials for ``grpc.secure_channel``
        """
        return grpc.ssl_channel_credentials(
            root_certificates=self.root_certificates,
            private_key=self.private_key,
            certificate_chain=self.certificate_chain,
        )

    def ssl_context(self) -> ssl.SSLContext:
        """Build an equivalent ``ssl`` context for diagnostic handshakes.

        Returns:
            ssl.SSLContext: Client context negotiating HTTP/2
        """
        cadata = self.root_certificates.decode("ascii") if self.root_certificates else None
        context = ssl.create_default_context(cadata=cadata)
        context.set_alpn_protocols(["h2"])
        if self.private_key and self.certificate_chain:
            # load_cert_chain only accepts paths
            with tempfile.TemporaryDirectory(prefix="grpcinvoker-tls-") as tmp:
                cert_path = os.path.join(tmp, "chain.pem")
                key_path = os.path.join(tmp, "key.pem")
                with open(cert_path, "wb") as f:
                    f.write(self.certificate_chain)
                with open(key_path, "wb") as f:
                    f.write(self.private_key)
                context.load_cert_chain(cert_path, key_path)
        return context


class ErrorTrackingDialer:
    """Raw network dialer that remembers the last connection error."""

    def __init__(self):
        """Initialize with no recorded error."""
        self._lock = threading.Lock()
        self._last_error: Optional[BaseException] = None

    def dial(self, address: str, timeout: float, secure: bool = False) -> socket.socket:
        """Open a plain socket to the target.

        Args:
            address: Dial target
            timeout: Connect timeout in seconds
            secure: Whether a missing port means the TLS default

        Returns:
            socket.socket: Connected socket

        Raises:
            OSError: If the address is malformed or the connection fails (the error is also recorded)
        """
        try:
            if address.startswith("unix:"):
                path = address[len("unix:") :]
                if path.startswith("//"):
                    path = path[2:]
                sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                sock.settimeout(timeout)
                try:
                    sock.connect(path)
                except OSError:
                    sock.close()
                    raise
                return sock
            try:
                target = split_address(address, secure=secure)
            except ValueError as e:
                raise OSError(str(e)) from e
            return socket.create_connection(target, timeout=timeout)
        except OSError as e:
            with self._lock:
                self._last_error = e
            raise

    def err(self) -> Optional[BaseException]:
        """Return the last recorded connection error.

        Returns:
            Optional[BaseException]: Last error, if any
        """
        with self._lock:
            return self._last_error


class ErrorTrackingCredentials:
    """TLS credentials wrapper that remembers the last handshake error."""

    def __init__(self, credentials: TransportCredentials):
        """Wrap credentials.

        Args:
            credentials: The credentials handed to gRPC
        """
        self.credentials = credentials
        self._lock = threading.Lock()
        self._last_error: Optional[BaseException] = None

    def client_handshake(self, raw_sock: socket.socket, host: str) -> ssl.SSLSocket:
        """Run a TLS client handshake over an already connected socket.

        Args:
            raw_sock: Connected socket
            host: Dialed host, used for SNI and verification unless overridden

        Returns:
            ssl.SSLSocket: Socket after a successful handshake

        Raises:
            ssl.SSLError: If the handshake fails (the error is also recorded)
            OSError: If the peer drops the connection mid-handshake
        """
        server_name = self.credentials.server_name_override or host
        try:
            return self.credentials.ssl_context().wrap_socket(raw_sock, server_hostname=server_name)
        except (ssl.SSLError, ssl.CertificateError, OSError) as e:
            with self._lock:
                self._last_error = e
            raise

    def err(self) -> Optional[BaseException]:
        """Return the last recorded handshake error.

        Returns:
            Optional[BaseException]: Last error, if any
        """
        with self._lock:
            return self._last_error


class _ConnectivityWatcher:
    """Collects connectivity transitions of a channel."""

    def __init__(self):
        self.ready = threading.Event()
        self.failed = threading.Event()
        self.changed = threading.Event()

    def __call__(self, state: grpc.ChannelConnectivity) -> None:
        if state == grpc.ChannelConnectivity.READY:
            self.ready.set()
        elif state in _FAILED_STATES:
            self.failed.set()
        self.changed.set()


class Dialer:
    """Creates ready-to-use channels.

    Examples:
        >>> d = Dialer(timeout=2.0, fail_fast=False)
        >>> d.timeout, d.fail_fast
        (2.0, False)
        >>> ("grpc.max_receive_message_length", 256 * 1024 * 1024) in d.options
        True
    """

    def __init__(
        self,
        credentials: Optional[TransportCredentials] = None,
        fail_fast: Optional[bool] = None,
        timeout: Optional[float] = None,
        options: Optional[Sequence[Tuple[str, object]]] = None,
    ):
        """Initialize the dialer.

        Args:
            credentials: TLS credentials; None dials in plaintext
            fail_fast: Abort on the first failure, defaults to ``settings.fail_fast``
            timeout: Dial timeout in seconds, defaults to ``settings.dial_timeout``
            options: Extra channel options appended to the defaults
        """
        self.credentials = credentials
        self.fail_fast = settings.fail_fast if fail_fast is None else fail_fast
        self.timeout = settings.dial_timeout if timeout is None else timeout
        self.options: ChannelOptions = self._default_options() + list(options or [])

    def _default_options(self) -> ChannelOptions:
        options: ChannelOptions = [("grpc.max_receive_message_length", settings.max_receive_message_length)]
        if settings.keepalive_time > 0:
            keepalive_ms = int(settings.keepalive_time * 1000)
            options.append(("grpc.keepalive_time_ms", keepalive_ms))
            options.append(("grpc.keepalive_timeout_ms", keepalive_ms))
        if self.credentials is not None and self.credentials.server_name_override:
            options.append(("grpc.ssl_target_name_override", self.credentials.server_name_override))
        return options

    def _create_channel(self, address: str) -> grpc.Channel:
        if self.credentials is None:
            return grpc.insecure_channel(address, options=self.options)
        return grpc.secure_channel(address, self.credentials.channel_credentials(), options=self.options)

    def dial(self, address: str) -> grpc.Channel:
        """Connect to the target and wait until the channel is ready.

        Args:
            address: Dial target

        Returns:
            grpc.Channel: A READY channel

        Raises:
            DialError: If the channel does not become ready
        """
        net_dialer = ErrorTrackingDialer()
        tracking_creds = ErrorTrackingCredentials(self.credentials) if self.credentials is not None else None

        channel = self._create_channel(address)
        watcher = _ConnectivityWatcher()
        channel.subscribe(watcher, try_to_connect=True)
        try:
            if self.fail_fast:
                self._wait_fail_fast(channel, address, watcher, net_dialer, tracking_creds)
            else:
                self._wait_tracking(channel, address, watcher, net_dialer, tracking_creds)
        except Exception:
            channel.unsubscribe(watcher)
            channel.close()
            raise
        channel.unsubscribe(watcher)

        logger.debug(f"Dialed {address} (fail_fast={self.fail_fast})")
        return channel

    def _wait_fail_fast(self, channel, address, watcher, net_dialer, tracking_creds) -> None:
        deadline = time.monotonic() + self.timeout
        while not watcher.ready.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise DialError(address, TimeoutError("context deadline exceeded"))
            watcher.changed.wait(remaining)
            watcher.changed.clear()
            if watcher.failed.is_set() and not watcher.ready.is_set():
                self._diagnose(address, net_dialer, tracking_creds, max(deadline - time.monotonic(), 0.1))
                cause = _preferred_error(tracking_creds, net_dialer)
                if cause is None:
                    raise DialError(address, message=f"failed to dial target {address}: connection failed")
                raise DialError(address, cause)

    def _wait_tracking(self, channel, address, watcher, net_dialer, tracking_creds) -> None:
        deadline = time.monotonic() + self.timeout
        while not watcher.ready.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            watcher.changed.wait(remaining)
            watcher.changed.clear()
            if watcher.failed.is_set() and not watcher.ready.is_set():
                watcher.failed.clear()
                logger.debug(f"Transient failure dialing {address}, still waiting")
                self._diagnose(address, net_dialer, tracking_creds, max(deadline - time.monotonic(), 0.1))
        if watcher.ready.is_set():
            return

        cause = _preferred_error(tracking_creds, net_dialer)
        if cause is None:
            cause = TimeoutError("context deadline exceeded")
        raise DialError(address, cause)

    def _diagnose(self, address: str, net_dialer: ErrorTrackingDialer, tracking_creds: Optional[ErrorTrackingCredentials], timeout: float) -> None:
        """Replay the connection outside of gRPC so its failure gets recorded.

        Args:
            address: Dial target
            net_dialer: Records raw dial failures
            tracking_creds: Records handshake failures, None for plaintext
            timeout: Seconds allowed for the replay
        """
        # Failures below are already recorded by the trackers
        try:
            sock = net_dialer.dial(address, timeout, secure=tracking_creds is not None)
        except OSError:
            return
        try:
            if tracking_creds is not None:
                host, _ = split_address(address, secure=True)
                sock.settimeout(timeout)
                sock = tracking_creds.client_handshake(sock, host)
        except (ssl.SSLError, ssl.CertificateError, OSError):
            logger.debug(f"TLS handshake with {address} failed: {tracking_creds.err() if tracking_creds else None}")
        finally:
            sock.close()


def _preferred_error(tracking_creds: Optional[ErrorTrackingCredentials], net_dialer: ErrorTrackingDialer) -> Optional[BaseException]:
    """Pick the most diagnostic recorded error.

    Args:
        tracking_creds: Handshake error tracker, if TLS is in use
        net_dialer: Raw dial error tracker

    Returns:
        Optional[BaseException]: Handshake error, else dial error, else None
    """
    if tracking_creds is not None and tracking_creds.err() is not None:
        return tracking_creds.err()
    return net_dialer.err()


def dial(
    address: str,
    credentials: Optional[TransportCredentials] = None,
    fail_fast: Optional[bool] = None,
    timeout: Optional[float] = None,
) -> grpc.Channel:
    """Dial a target with a one-off ``Dialer``.

    Args:
        address: Dial target
        credentials: TLS credentials; None dials in plaintext
        fail_fast: Abort on the first failure, defaults to ``settings.fail_fast``
        timeout: Dial timeout in seconds, defaults to ``settings.dial_timeout``

    Returns:
        grpc.Channel: A READY channel
    """
    return Dialer(credentials=credentials, fail_fast=fail_fast, timeout=timeout).dial(address)
