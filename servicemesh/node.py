"""Nodes of the mesh and the catalog that tracks them."""

from __future__ import annotations

import ipaddress
import logging
import platform
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any

_CLIENT_TYPE = "servicemesh"
_CLIENT_VERSION = "0.1.0"


def discover_ip_list() -> list[str]:
    """Return this host's non-loopback IPv4 addresses, or ["0.0.0.0"] when none are found."""
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        return []
    result: list[str] = []
    for info in infos:
        address = info[4][0]
        try:
            if ipaddress.ip_address(address).is_loopback:
                continue
        except ValueError:
            continue
        if address not in result:
            result.append(address)
    return result or ["0.0.0.0"]


def discover_hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


def _client_info() -> dict[str, Any]:
    return {
        "type": _CLIENT_TYPE,
        "version": _CLIENT_VERSION,
        "langVersion": platform.python_version(),
    }


def _int_field(values: dict[str, Any], name: str, default: int = 0) -> int:
    raw = values.get(name)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return default
    return int(raw)


def filter_services(info: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the services of a node info map, leaving out internal ones (names with '$')."""
    return [item for item in info.get("services") or [] if "$" not in item["name"]]


@dataclass(eq=False)
class Node:
    """A broker node, local or remote, and what is known about it."""

    id: str
    is_local: bool = False
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger(__name__), repr=False
    )
    sequence: int = 1
    ip_list: list[str] = field(default_factory=discover_ip_list)
    hostname: str = field(default_factory=discover_hostname)
    client: dict[str, Any] = field(default_factory=_client_info)
    services: list[dict[str, Any]] = field(default_factory=list)
    cpu: int = 0
    cpu_sequence: int = 0
    last_heartbeat_time: int = 0
    offline_since: int = 0
    _available: bool = field(default=False, init=False, repr=False)

    @property
    def is_available(self) -> bool:
        return self.is_local or self._available

    def update(self, node_id: str, info: dict[str, Any]) -> bool:
        """Refresh the node from an info message; return True when it was unavailable before."""
        if node_id != self.id:
            raise ValueError(
                f"Node.update() - the id received : {node_id} does not match this node.id : {self.id}"
            )
        self.logger.debug("node.update() info: %s", info)
        reconnected = not self._available
        self._available = True
        self.last_heartbeat_time = int(time.time())
        self.offline_since = 0
        self.ip_list = [str(item) for item in info["ipList"]]
        self.hostname = info["hostname"]
        self.client = info["client"]
        self.services = filter_services(info)
        self.sequence = _int_field(info, "seq")
        self.cpu = _int_field(info, "cpu")
        self.cpu_sequence = _int_field(info, "cpuSeq")
        return reconnected

    def export_as_map(self) -> dict[str, Any]:
        """Return the node info as published to other nodes."""
        return {
            "id": self.id,
            "services": self.services,
            "ipList": self.ip_list,
            "hostname": self.hostname,
            "client": self.client,
            "seq": self.sequence,
            "cpu": self.cpu,
            "cpuSeq": self.cpu_sequence,
            "available": self.is_available,
            "metadata": {},
        }

    def is_expired(self, timeout: float) -> bool:
        """Tell whether a remote, available node has sent no heartbeat within timeout seconds."""
        if self.is_local or not self.is_available:
            return False
        return int(time.time()) - self.last_heartbeat_time > int(timeout)

    def heart_beat(self, heartbeat: dict[str, Any]) -> None:
        if not self._available:
            self._available = True
            self.offline_since = 0
        self.cpu = _int_field(heartbeat, "cpu")
        self.cpu_sequence = _int_field(heartbeat, "cpuSeq")
        self.last_heartbeat_time = int(time.time())

    def publish(self, service: dict[str, Any]) -> None:
        self.services.append(service)

    def unavailable(self) -> None:
        self._available = False

    def available(self) -> None:
        self._available = True

    def increase_sequence(self) -> None:
        self.sequence += 1


class NodeCatalog:
    """Thread-safe catalog of known nodes, keyed by node id."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._nodes: dict[str, Node] = {}
        self._lock = threading.Lock()
        self.logger = logger or logging.getLogger(__name__)

    def heart_beat(self, heartbeat: dict[str, Any]) -> bool:
        """Pass a heartbeat to its sender; False when the sender is unknown or unavailable."""
        node = self.find_node(heartbeat["sender"])
        if node is not None and node.is_available:
            node.heart_beat(heartbeat)
            return True
        return False

    def add(self, node: Node) -> None:
        with self._lock:
            self._nodes[node.id] = node

    def info(self, info: dict[str, Any]) -> tuple[bool, bool]:
        """Apply a node info message; return (node already known, node reconnected)."""
        sender = info["sender"]
        node = self.find_node(sender)
        if node is not None:
            return True, node.update(sender, info)
        node = Node(sender, is_local=False, logger=self.logger.getChild(sender))
        node.update(sender, info)
        self.add(node)
        return False, False

    def find_node(self, node_id: str) -> Node | None:
        with self._lock:
            return self._nodes.get(node_id)

    def remove_node(self, node_id: str) -> None:
        with self._lock:
            self._nodes.pop(node_id, None)

    def list(self) -> list[Node]:
        with self._lock:
            return list(self._nodes.values())

    def expired_nodes(self, timeout: float) -> list[Node]:
        return [node for node in self.list() if node.is_expired(timeout)]