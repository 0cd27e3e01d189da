from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from config import settings


@dataclass(frozen=True)
class Endpoint:
    """A daemon address; the port is always explicit once parsed."""

    host: str
    port: int

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("Empty host")
        if not 0 < self.port < 65536:
            raise ValueError(f"Port out of range: {self.port}")

    @classmethod
    def parse(cls, spec: str, default_port: Optional[int] = None) -> "Endpoint":
        """Parse ``host``, ``host:port``, ``[v6addr]`` or ``[v6addr]:port``.

        A spec without a port gets ``default_port`` (the configured daemon
        port when omitted).
        """
        if default_port is None:
            default_port = settings.default_port
        spec = spec.strip()
        host, port = _split_host_port(spec)
        if port is None:
            return cls(host, default_port)
        if not port.isdigit():
            raise ValueError(f"Invalid port in host spec {spec!r}")
        return cls(host, int(port))

    def address(self) -> Tuple[str, int]:
        return (self.host, self.port)

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def _split_host_port(spec: str) -> Tuple[str, Optional[str]]:
    if spec.startswith("["):
        p = spec.find("]")
        if p < 0:
            raise ValueError(f"Unterminated IPv6 literal in {spec!r}")
        host, rest = spec[1:p], spec[p + 1:]
        if not rest:
            return host, None
        if not rest.startswith(":"):
            raise ValueError(f"Unexpected text after IPv6 literal in {spec!r}")
        return host, rest[1:]
    if spec.count(":") > 1:
        # Bare IPv6 address, no port
        return spec, None
    if ":" in spec:
        p = spec.rindex(":")
        return spec[:p], spec[p + 1:]
    return spec, None


def parse_hosts(specs, default_port: Optional[int] = None):
    """Expand repeated/comma-separated host options into Endpoints, in order."""
    endpoints = []
    for spec in specs:
        for item in spec.split(","):
            if item.strip():
                endpoints.append(Endpoint.parse(item, default_port))
    return endpoints
