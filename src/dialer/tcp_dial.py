# -*- coding: utf-8 -*-
"""
tcp_dial.py: Outbound TCP connections to a named host and port.

A dial resolves the "tcp" protocol number, creates one stream endpoint,
resolves the host/port pair into every candidate address the system resolver
knows about (IPv4 and IPv6), and connects to the first candidate that accepts.
Failures are reported through the taxonomy in src.dialer.errors.

Example:
    with dial("localhost", "9090") as conn:
        conn.sendall(b"ping")
"""

import argparse
import logging
import socket
import sys
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.core.config import FAMILIES, ConfigError, DialerConfig, load_config
from src.core.logging_utils import configure_logging
from src.dialer.errors import (
    DialError,
    DialErrorCode,
    EndpointCreationError,
    NotConnectedError,
    ProtocolUnavailableError,
    ResolutionError,
    normalize_resolution_error,
    resolution_errno,
)

logger = logging.getLogger(__name__)

PROTOCOL_NAME = "tcp"
RECV_CHUNK = 4096
DEMO_PORT = 9090


@dataclass(frozen=True)
class CandidateAddress:
    """One entry of a getaddrinfo() result."""
    family: int
    type: int
    proto: int
    canonname: str
    sockaddr: Tuple

    @classmethod
    def from_addrinfo(cls, info: Sequence) -> "CandidateAddress":
        family, type_, proto, canonname, sockaddr = info
        return cls(family, type_, proto, canonname, sockaddr)

    @property
    def host(self) -> str:
        return self.sockaddr[0]

    @property
    def port(self) -> int:
        return self.sockaddr[1]


@dataclass(frozen=True)
class DialResult:
    """Outcome of try_dial(): either a connected endpoint or an error code."""
    endpoint: Optional[socket.socket] = None
    error: Optional[DialErrorCode] = None
    errno: Optional[int] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.endpoint is not None


def _as_service(port: Union[str, int, None]) -> Optional[str]:
    if port is None:
        return None
    return str(port)


def format_peer(sockaddr: Tuple) -> str:
    host, port = sockaddr[0], sockaddr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class Dialer:
    """
    Establishes one outbound TCP connection per call.

    The endpoint family is fixed at construction (IPv4 unless told otherwise);
    candidates of the other family are skipped during the connect loop. A
    Dialer holds no per-call state and can be shared between threads.
    """

    def __init__(self, family: int = socket.AF_INET):
        if family not in FAMILIES.values():
            raise ValueError(f"Unsupported address family: {family!r}")
        self.family = family

    @classmethod
    def from_config(cls, config: DialerConfig) -> "Dialer":
        return cls(family=config.socket_family)

    def resolve_protocol(self) -> int:
        try:
            proto = socket.getprotobyname(PROTOCOL_NAME)
        except OSError as e:
            raise ProtocolUnavailableError(
                f"'{PROTOCOL_NAME}' is not listed in the protocol database"
            ) from e
        logger.debug(f"Protocol '{PROTOCOL_NAME}' resolved to {proto}")
        return proto

    def create_endpoint(self, proto: int) -> socket.socket:
        try:
            endpoint = socket.socket(self.family, socket.SOCK_STREAM, proto)
        except OSError as e:
            raise EndpointCreationError(
                f"Could not create endpoint: {e.strerror or e}",
                code=DialErrorCode.from_errno(e.errno),
                errno=e.errno,
            ) from e
        logger.debug(f"Created endpoint (family={self.family!r}, proto={proto})")
        return endpoint

    def resolve_addresses(self, host: str, port: Optional[str], proto: int) -> Tuple[CandidateAddress, ...]:
        """
        Resolves host and port to candidate addresses in resolver order.

        An empty host or port is handed to the resolver as "unspecified".
        """
        try:
            infos = socket.getaddrinfo(host or None, port or None,
                                       socket.AF_UNSPEC, socket.SOCK_STREAM, proto)
        except (OSError, ValueError) as e:
            code = normalize_resolution_error(e)
            raise ResolutionError(
                f"Could not resolve {host!r} port {port!r}: {e}",
                code=code,
                errno=resolution_errno(e, code),
                host=host,
                port=port,
            ) from e
        candidates = tuple(CandidateAddress.from_addrinfo(info) for info in infos)
        logger.debug(f"Resolved {host!r} port {port!r} to {len(candidates)} candidate(s)")
        return candidates

    def attempt_connection(self, endpoint: socket.socket,
                           candidates: Sequence[CandidateAddress]) -> CandidateAddress:
        """Connects endpoint to the first candidate that accepts and returns that candidate."""
        for candidate in candidates:
            if candidate.family != self.family:
                logger.debug(f"Skipping {candidate.host}: endpoint family does not match")
                continue
            try:
                endpoint.connect(candidate.sockaddr)
            except OSError as e:
                logger.debug(f"Connect to {format_peer(candidate.sockaddr)} failed: {e}")
                continue
            return candidate
        raise NotConnectedError(
            f"None of {len(candidates)} candidate address(es) accepted the connection"
        )

    def _dial(self, host: str, port: Optional[str]) -> socket.socket:
        proto = self.resolve_protocol()
        endpoint = self.create_endpoint(proto)
        try:
            candidates = self.resolve_addresses(host, port, proto)
            candidate = self.attempt_connection(endpoint, candidates)
        except BaseException:
            endpoint.close()
            raise
        logger.info(f"Connected to {host!r} port {port!r} via {format_peer(candidate.sockaddr)}")
        return endpoint

    def dial(self, host: str, port: Union[str, int]) -> socket.socket:
        """
        Opens a TCP connection to host:port.

        Returns the connected socket; the caller owns it and must close it.
        Raises DialError (or one of its subclasses) on failure, with no socket
        left open.
        """
        service = _as_service(port)
        try:
            return self._dial(host, service)
        except DialError as e:
            if e.host is None:
                e.host, e.port = host, service
            logger.warning(f"Dial {host!r} port {service!r} failed: {e}")
            raise

    def try_dial(self, host: str, port: Union[str, int]) -> DialResult:
        try:
            endpoint = self.dial(host, port)
        except DialError as e:
            return DialResult(error=e.code, errno=e.errno, message=e.args[0])
        return DialResult(endpoint=endpoint)


_default_dialer = Dialer()


def dial(host: str, port: Union[str, int]) -> socket.socket:
    """Dials with an IPv4 endpoint. See Dialer.dial()."""
    return _default_dialer.dial(host, port)


def try_dial(host: str, port: Union[str, int]) -> DialResult:
    return _default_dialer.try_dial(host, port)


# --- Demo Mode ---

LOOPBACK = {
    socket.AF_INET: "127.0.0.1",
    socket.AF_INET6: "::1",
}
DEMO_ACCEPT_TIMEOUT = 5.0


def _serve_echo_once(server: socket.socket):
    try:
        conn, _ = server.accept()
    except socket.timeout:
        logger.debug("Demo listener saw no connection; giving up")
        return
    with conn:
        data = conn.recv(RECV_CHUNK)
        if data:
            conn.sendall(data)


def _demo_row(dialer: Dialer, label: str, host: str, port: str, echo: bool = False):
    result = dialer.try_dial(host, port)
    if not result.ok:
        return label, host, port, f"[red]{result.error.value}[/red]", escape(f"errno={result.errno} {result.message}")

    with result.endpoint as endpoint:
        detail = format_peer(endpoint.getpeername())
        if echo:
            endpoint.sendall(b"ping")
            detail += f" echoed {endpoint.recv(RECV_CHUNK)!r}"
    return label, host, port, "[green]Connected[/green]", escape(detail)


def run_demo(dialer: Dialer, console: Console, port: int = DEMO_PORT,
             accept_timeout: float = DEMO_ACCEPT_TIMEOUT) -> int:
    """
    Dials a few well-known scenarios against a temporary loopback listener.

    The listener uses the dialer's family and waits at most accept_timeout
    seconds for the demo connection.
    """
    logger.info("=== Starting tcpdial Demo Mode ===")
    table = Table(title="tcpdial demo")
    for column in ("Scenario", "Host", "Port", "Outcome", "Detail"):
        table.add_column(column)

    loopback = LOOPBACK[dialer.family]
    server = None
    try:
        server = socket.socket(dialer.family, socket.SOCK_STREAM)
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server.bind((loopback, port))
        server.listen()
        server.settimeout(accept_timeout)
    except OSError as e:
        if server is not None:
            server.close()
        logger.warning(f"Could not listen on {format_peer((loopback, port))}: {e}. Skipping the listener scenario.")
    else:
        with server:
            worker = threading.Thread(target=_serve_echo_once, args=(server,), daemon=True)
            worker.start()
            table.add_row(*_demo_row(dialer, "listener on loopback", "localhost", str(port), echo=True))
            worker.join(accept_timeout)

    table.add_row(*_demo_row(dialer, "no listener", "localhost", str(port)))
    table.add_row(*_demo_row(dialer, "unknown host", "no-such-host.invalid", "80"))
    table.add_row(*_demo_row(dialer, "unspecified host, port zero", "", "0"))

    console.print(table)
    logger.info("=== Demo Mode Finished ===")
    return 0


# --- Main execution for CLI ---

def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Open a TCP connection to HOST PORT, trying every resolved address in order.")
    parser.add_argument("host", nargs='?', default=None, help="Host name, IPv4/IPv6 literal, or '' for the local host.")
    parser.add_argument("port", nargs='?', default=None, help="Decimal port number or service name, e.g. 9090 or http.")
    parser.add_argument("--send", default=None, help="Text to send once connected; one reply chunk is printed.")
    parser.add_argument("--family", choices=sorted(FAMILIES), default=None, help="Endpoint address family (default from config: inet).")
    parser.add_argument("--config", default=None, help="Path to a dialer YAML config file.")
    parser.add_argument("--log-level", default=None, help="Logging level, e.g. DEBUG.")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines.")
    parser.add_argument("--demo", action="store_true", help="Run demo scenarios against a loopback listener on port 9090.")

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        config = DialerConfig(
            family=args.family or config.family,
            log_level=args.log_level or config.log_level,
            log_format="json" if args.json_logs else config.log_format,
        )
    except ConfigError as e:
        parser.error(str(e))

    configure_logging(config.log_level, config.log_format)
    console = Console()
    dialer = Dialer.from_config(config)

    if args.demo:
        return run_demo(dialer, console)

    if args.host is None or args.port is None:
        parser.error("HOST and PORT are required unless --demo is specified.")

    try:
        endpoint = dialer.dial(args.host, args.port)
    except DialError as e:
        console.print(f"[bold red]E: tcpdial {escape(str(e))} (errno {e.errno})[/bold red]")
        return 1

    with endpoint:
        console.print(f"[bold green]Connected to {format_peer(endpoint.getpeername())}[/bold green]")
        if args.send is not None:
            try:
                endpoint.sendall(args.send.encode())
                reply = endpoint.recv(RECV_CHUNK)
            except OSError as e:
                logger.error(f"Exchange with {args.host}:{args.port} failed: {e}")
                console.print(f"[bold red]E: {escape(str(e))}[/bold red]")
                return 1
            console.print(escape(reply.decode('utf-8', 'ignore')))
    return 0


if __name__ == "__main__":
    sys.exit(main())
