"""UDP sockets: a pool that finds bindable ports, and a connection with a read loop."""

from __future__ import annotations

import errno
import ipaddress
import select
import socket
import threading
import weakref
from typing import Callable, Optional, Tuple, Union

__all__ = ["NetError", "AvailUdpConnPool", "UdpConnection", "listen_udp"]

Address = Tuple[str, int]
OnReadUdpPacket = Callable[
    [Union[bytes, memoryview], Optional[Address], Optional[BaseException]], bool
]


class NetError(Exception):
    """Raised when no port is available, no peer is known or the connection is closed."""


def _split_host_port(addr: str) -> Address:
    if not addr:
        return "", 0
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise NetError(f"missing port in address: {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_num = int(port) if port else 0
    except ValueError as exc:
        raise NetError(f"invalid port in address: {addr!r}") from exc
    return host, port_num


def _normalize(sockaddr) -> Address:
    """Turn a socket address into (host, port), unmapping IPv4-mapped IPv6 hosts."""
    host = sockaddr[0]
    if host.startswith("::ffff:"):
        candidate = host[len("::ffff:"):]
        try:
            ipaddress.IPv4Address(candidate)
        except ValueError:
            pass
        else:
            host = candidate
    return host, sockaddr[1]


def _resolve(addr: str) -> Address:
    host, port = _split_host_port(addr)
    infos = socket.getaddrinfo(host or None, port, type=socket.SOCK_DGRAM)
    return _normalize(infos[0][4])


def _sockaddr_for(sock: socket.socket, addr: Address):
    """A socket address for `addr` usable with `sock`'s address family."""
    host, port = addr[0], addr[1]
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
    for family, _, _, _, sockaddr in infos:
        if family == sock.family:
            return sockaddr
    if sock.family == socket.AF_INET6:
        for family, _, _, _, sockaddr in infos:
            if family == socket.AF_INET:
                return ("::ffff:" + sockaddr[0], sockaddr[1], 0, 0)
    raise NetError(f"address {host}:{port} is not reachable from this socket")


def _dual_stack_socket() -> Optional[socket.socket]:
    if not socket.has_ipv6:
        return None
    try:
        sock = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM)
    except OSError:
        return None
    try:
        sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
    except (OSError, AttributeError):
        sock.close()
        return None
    return sock


def listen_udp(addr: str = "") -> socket.socket:
    """Bind a UDP socket to `addr` (``host:port``, ``:port`` or empty for any port)."""
    host, port = _split_host_port(addr)
    if not host:
        sock = _dual_stack_socket()
        if sock is not None:
            try:
                sock.bind(("::", port))
                return sock
            except OSError as exc:
                sock.close()
                if exc.errno not in (errno.EADDRNOTAVAIL, errno.EAFNOSUPPORT):
                    raise
        family, sockaddr = socket.AF_INET, ("0.0.0.0", port)
    else:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM, flags=socket.AI_PASSIVE)
        family, sockaddr = infos[0][0], infos[0][4]
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.bind(sockaddr)
    except OSError:
        sock.close()
        raise
    return sock


class AvailUdpConnPool:
    """Finds and binds free UDP ports within [min_port, max_port].

    Sockets handed out belong to the caller, who closes them when done.
    """

    def __init__(self, min_port: int, max_port: int) -> None:
        self.min_port = min_port
        self.max_port = max_port
        self._lock = threading.Lock()
        self._last_port = min_port

    def _span(self) -> int:
        return self.max_port - self.min_port + 1

    def _next_port(self, p: int) -> int:
        return self.min_port if p == self.max_port else p + 1

    def acquire(self) -> tuple[socket.socket, int]:
        """Bind the next free port; raise NetError after trying the whole range."""
        with self._lock:
            p = self._last_port
            tried = 0
            while tried < self._span():
                tried += 1
                try:
                    sock = listen_udp(f":{p}")
                except OSError:
                    p = self._next_port(p)
                    continue
                self._last_port = self._next_port(p)
                return sock, p
            raise NetError(f"no available udp port in [{self.min_port}, {self.max_port}]")

    def acquire2(self) -> tuple[socket.socket, int, socket.socket, int]:
        """Bind two consecutive free ports; the first returned is the lower one."""
        with self._lock:
            p = self._last_port
            tried = 0
            while True:
                if tried >= self._span():
                    raise NetError(
                        f"no available udp port pair in [{self.min_port}, {self.max_port}]"
                    )
                tried += 1
                # The highest port has no successor in range.
                if p == self.max_port:
                    p = self.min_port
                    continue
                tried += 1
                try:
                    sock1 = listen_udp(f":{p}")
                except OSError:
                    p = self._next_port(p + 1)
                    continue
                try:
                    sock2 = listen_udp(f":{p + 1}")
                except OSError:
                    sock1.close()
                    p = self._next_port(p + 1)
                    continue
                self._last_port = self._next_port(p + 1)
                return sock1, p, sock2, p + 1

    def peek(self) -> int:
        """Find a free port, release it at once and return its number."""
        sock, port = self.acquire()
        sock.close()
        return port


class UdpConnection:
    """A UDP socket with a blocking read loop and a default peer.

    Either pass a bound socket as `conn`, or a local address `laddr` (empty
    picks any port). `raddr`, when set, is where write() sends; otherwise
    write() replies to the sender of the last packet read by run_loop().
    """

    def __init__(
        self,
        conn: Optional[socket.socket] = None,
        laddr: str = "",
        raddr: str = "",
        max_read_packet_size: int = 1500,
        alloc_each_read: bool = True,
    ) -> None:
        self.max_read_packet_size = max_read_packet_size
        self.alloc_each_read = alloc_each_read
        resolved = _resolve(raddr) if raddr else None
        self.conn = conn if conn is not None else listen_udp(laddr)
        self._raddr_from_option = None
        self._raddr_from_read = None
        if resolved is not None:
            try:
                self._raddr_from_option = _sockaddr_for(self.conn, resolved)
            except (OSError, NetError):
                self.conn.close()
                raise
        self._closed = False
        self._close_lock = threading.Lock()
        self._wake_r, self._wake_w = socket.socketpair()
        weakref.finalize(self, self._wake_r.close)

    def set_read_buffer(self, size: int) -> None:
        """Set the kernel receive buffer; the connection is closed on failure."""
        try:
            self.conn.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, size)
        except OSError:
            self._close()
            raise

    def set_write_buffer(self, size: int) -> None:
        """Set the kernel send buffer; the connection is closed on failure."""
        try:
            self.conn.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, size)
        except OSError:
            self._close()
            raise

    def _wait_readable(self, timeout: Optional[float]) -> bool:
        if self._closed:
            raise NetError("use of closed network connection")
        try:
            readable, _, _ = select.select([self.conn, self._wake_r], [], [], timeout)
        except (OSError, ValueError) as exc:
            if self._closed:
                raise NetError("use of closed network connection") from exc
            raise
        if self._closed or self._wake_r in readable:
            raise NetError("use of closed network connection")
        return bool(readable)

    def run_loop(self, on_read: OnReadUdpPacket) -> None:
        """Read packets until an error, or until `on_read` returns False.

        `on_read(data, addr, err)` is called for every packet and once for the
        error that ends the loop; that error is then raised. When `on_read`
        returns False after a good packet, the connection is closed and the
        loop returns.
        """
        shared = None if self.alloc_each_read else bytearray(self.max_read_packet_size)
        while True:
            data: Union[bytes, memoryview] = b""
            addr: Optional[Address] = None
            err: Optional[BaseException] = None
            try:
                self._wait_readable(None)
                if shared is None:
                    data, raw = self.conn.recvfrom(self.max_read_packet_size)
                else:
                    n, raw = self.conn.recvfrom_into(shared)
                    data = memoryview(shared)[:n]
                self._raddr_from_read = raw
                addr = _normalize(raw)
            except (OSError, NetError) as exc:
                self._raddr_from_read = None
                err = exc
            keep_running = on_read(data, addr, err)
            if not keep_running and err is None:
                self.dispose()
                return
            if err is not None:
                raise err

    def read_with_timeout(self, timeout_ms: int) -> tuple[bytes, Address]:
        """Read one packet; raise TimeoutError when none arrives within `timeout_ms` (> 0)."""
        timeout = timeout_ms / 1000 if timeout_ms > 0 else None
        if not self._wait_readable(timeout):
            raise TimeoutError(f"no udp packet within {timeout_ms}ms")
        data, raw = self.conn.recvfrom(self.max_read_packet_size)
        return data, _normalize(raw)

    def write(self, data) -> None:
        """Send to `raddr`, or else to the sender of the last packet read."""
        if self._raddr_from_option is not None:
            self.conn.sendto(data, self._raddr_from_option)
        elif self._raddr_from_read is not None:
            self.conn.sendto(data, self._raddr_from_read)
        else:
            raise NetError("no remote address to write to")

    def write_to_addr(self, data, addr: Address) -> None:
        """Send to the explicit address `addr` as (host, port)."""
        self.conn.sendto(data, _sockaddr_for(self.conn, addr))

    def dispose(self) -> None:
        """Close the connection; raises NetError if it is already closed."""
        if not self._close():
            raise NetError("use of closed network connection")

    def _close(self) -> bool:
        with self._close_lock:
            if self._closed:
                return False
            self._closed = True
        self._wake_w.close()
        self.conn.close()
        return True

    def __enter__(self) -> UdpConnection:
        return self

    def __exit__(self, *exc_info) -> None:
        self._close()