"""Transport, mode and tuning settings shared by servers and clients."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Any

from uvrpc.errors import InvalidParamError


class Transport(IntEnum):
    """How peers reach each other."""

    INPROC = 0
    IPC = 1
    TCP = 2
    UDP = 3


class Mode(IntEnum):
    """Messaging pattern."""

    SERVER_CLIENT = 0
    BROADCAST = 1


class PerformanceMode(IntEnum):
    """Preset tuning profiles."""

    LOW_LATENCY = 0
    BALANCED = 1
    HIGH_THROUGHPUT = 2


_SCHEMES = {
    Transport.INPROC: "inproc://",
    Transport.IPC: "ipc://",
    Transport.TCP: "tcp://",
    Transport.UDP: "udp://",
}

_PROFILES: dict[PerformanceMode, dict[str, int]] = {
    PerformanceMode.LOW_LATENCY: {
        "batch_size": 1,
        "io_threads": 1,
        "sndhwm": 1000,
        "rcvhwm": 1000,
        "tcp_sndbuf": -1,
        "tcp_rcvbuf": -1,
        "linger": 0,
    },
    PerformanceMode.BALANCED: {
        "batch_size": 10,
        "io_threads": 1,
        "sndhwm": 10000,
        "rcvhwm": 10000,
        "tcp_sndbuf": -1,
        "tcp_rcvbuf": -1,
        "linger": 0,
    },
    PerformanceMode.HIGH_THROUGHPUT: {
        "batch_size": 100,
        "io_threads": 2,
        "sndhwm": 100000,
        "rcvhwm": 100000,
        "tcp_sndbuf": 4 * 1024 * 1024,
        "tcp_rcvbuf": 4 * 1024 * 1024,
        "linger": 0,
    },
}


def _coerce(enum_cls: type[IntEnum], value: Any, what: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidParamError(f"invalid {what}: {value!r}") from None


@dataclass
class Config:
    """Settings for a server or client; chainable updates return the config."""

    address: str | None = None
    transport: Transport = Transport.TCP
    mode: Mode = Mode.SERVER_CLIENT
    zmq_ctx: Any = None

    perf_mode: PerformanceMode = PerformanceMode.BALANCED
    batch_size: int = 10
    io_threads: int = 1
    sndhwm: int = 10000
    rcvhwm: int = 10000
    tcp_sndbuf: int = -1
    tcp_rcvbuf: int = -1
    tcp_keepalive: int = -1
    tcp_keepalive_idle: int = -1
    tcp_keepalive_cnt: int = -1
    tcp_keepalive_intvl: int = -1
    reconnect_ivl: int = 100
    reconnect_ivl_max: int = 0
    linger: int = 0

    udp_multicast: bool = False
    udp_multicast_group: str | None = None

    def __post_init__(self) -> None:
        self.transport = _coerce(Transport, self.transport, "transport")
        self.mode = _coerce(Mode, self.mode, "mode")
        self.perf_mode = _coerce(PerformanceMode, self.perf_mode, "performance mode")

    def apply_perf_mode(self, mode: PerformanceMode | int) -> Config:
        """Select a preset and set every tuning value it covers."""
        self.perf_mode = _coerce(PerformanceMode, mode, "performance mode")
        for name, value in _PROFILES[self.perf_mode].items():
            setattr(self, name, value)
        return self

    def set_hwm(self, sndhwm: int, rcvhwm: int) -> Config:
        """Set the send and receive high-water marks."""
        if sndhwm < 0 or rcvhwm < 0:
            raise InvalidParamError("high-water marks must not be negative")
        self.sndhwm = sndhwm
        self.rcvhwm = rcvhwm
        return self

    def set_tcp_keepalive(self, enable: bool, idle: int, cnt: int, intvl: int) -> Config:
        """Turn TCP keepalive on or off and set its timing."""
        if idle < -1 or cnt < -1 or intvl < -1:
            raise InvalidParamError("keepalive values must be -1 or greater")
        self.tcp_keepalive = 1 if enable else 0
        self.tcp_keepalive_idle = idle
        self.tcp_keepalive_cnt = cnt
        self.tcp_keepalive_intvl = intvl
        return self

    def set_reconnect(self, ivl: int, ivl_max: int) -> Config:
        """Set the reconnect interval and its upper bound (0 means no bound)."""
        if ivl < 0 or ivl_max < 0:
            raise InvalidParamError("reconnect intervals must not be negative")
        if ivl_max and ivl_max < ivl:
            raise InvalidParamError("maximum reconnect interval is below the interval")
        self.reconnect_ivl = ivl
        self.reconnect_ivl_max = ivl_max
        return self

    def set_udp_multicast(self, group: str) -> Config:
        """Enable UDP multicast to the given group."""
        if not group:
            raise InvalidParamError("multicast group must not be empty")
        self.udp_multicast = True
        self.udp_multicast_group = group
        return self

    def validate(self) -> Config:
        """Check the settings are usable together; raise InvalidParamError if not."""
        if not self.address:
            raise InvalidParamError("address is required")
        scheme = _SCHEMES[self.transport]
        if not self.address.startswith(scheme) or len(self.address) == len(scheme):
            raise InvalidParamError(
                f"address {self.address!r} does not suit transport {self.transport.name}"
            )
        if self.batch_size < 1:
            raise InvalidParamError("batch size must be at least 1")
        if self.io_threads < 1:
            raise InvalidParamError("at least one I/O thread is required")
        if self.sndhwm < 0 or self.rcvhwm < 0:
            raise InvalidParamError("high-water marks must not be negative")
        if self.udp_multicast and self.transport is not Transport.UDP:
            raise InvalidParamError("multicast needs the UDP transport")
        return self

    def copy(self) -> Config:
        """Return an independent copy of this configuration."""
        return Config(**{f.name: getattr(self, f.name) for f in fields(self)})