"""Catalog of services known to the registry, local and remote."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from .service import Action, Event, Service, create_service_from_map, parse_version


def create_key(name: str, version: str, node_id: str) -> str:
    return f"{node_id}:{name}:{version}"


@dataclass
class ServiceEntry:
    """A service registered for a node."""

    service: Service
    node_id: str


@dataclass
class RemoteUpdate:
    """What changed when a remote service definition was applied."""

    service: Service
    is_new: bool
    updated_actions: list[dict[str, Any]] = field(default_factory=list)
    new_actions: list[Action] = field(default_factory=list)
    deleted_actions: list[Action] = field(default_factory=list)
    updated_events: list[dict[str, Any]] = field(default_factory=list)
    new_events: list[Event] = field(default_factory=list)
    deleted_events: list[Event] = field(default_factory=list)


class ServiceCatalog:
    """Services by node, name and version, with a per-name counter."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._services: dict[str, ServiceEntry] = {}
        self._by_name: dict[str, int] = {}
        self._lock = threading.RLock()
        self.logger = logger or logging.getLogger(__name__)

    def find(self, name: str, version: str, node_id: str) -> bool:
        with self._lock:
            return create_key(name, version, node_id) in self._services

    def find_by_name(self, name: str) -> bool:
        with self._lock:
            return name in self._by_name

    def get(self, name: str, version: str, node_id: str) -> Service | None:
        with self._lock:
            entry = self._services.get(create_key(name, version, node_id))
        return entry.service if entry is not None else None

    def list_by_name(self) -> dict[str, list[ServiceEntry]]:
        """Group all entries by the service's full name."""
        result: dict[str, list[ServiceEntry]] = {}
        with self._lock:
            for entry in self._services.values():
                result.setdefault(entry.service.fullname, []).append(entry)
        return result

    def _decrement(self, name: str) -> None:
        if name in self._by_name:
            self._by_name[name] = max(self._by_name[name] - 1, 0)

    def remove_by_node(self, node_id: str) -> list[Service]:
        """Remove every service of the node and return the removed services."""
        self.logger.debug("remove_by_node() nodeID: %s", node_id)
        with self._lock:
            keys = [key for key, entry in self._services.items() if entry.node_id == node_id]
            removed = [self._services.pop(key).service for key in keys]
            for service in removed:
                self._decrement(service.name)
            for service in removed:
                self._decrement(service.fullname)
        return removed

    def add(self, service: Service) -> None:
        key = create_key(service.name, service.version, service.node_id)
        with self._lock:
            self._services[key] = ServiceEntry(service, service.node_id)
            count = self._by_name.get(service.fullname, 0) + 1
            self._by_name[service.fullname] = count
            self._by_name[service.name] = count

    @staticmethod
    def _update_actions(
        service_info: dict[str, Any], current: Service
    ) -> tuple[list[dict[str, Any]], list[Action], list[Action]]:
        updated: list[dict[str, Any]] = []
        added: list[Action] = []
        deleted: list[Action] = []
        actions = service_info["actions"]
        for action_info in actions.values():
            name = action_info["name"]
            if any(action.fullname == name for action in current.actions):
                updated.append(action_info)
            else:
                added.append(current.add_action_map(action_info))
        for action in list(current.actions):
            if action.fullname not in actions:
                deleted.append(action)
                current.remove_action(action.fullname)
        return updated, added, deleted

    @staticmethod
    def _update_events(
        service_info: dict[str, Any], current: Service
    ) -> tuple[list[dict[str, Any]], list[Event], list[Event]]:
        updated: list[dict[str, Any]] = []
        added: list[Event] = []
        deleted: list[Event] = []
        events = service_info["events"]
        for event_info in events.values():
            name = event_info["name"]
            if any(event.name == name for event in current.events):
                updated.append(event_info)
            else:
                added.append(current.add_event_map(event_info))
        for event in list(current.events):
            if event.name not in events:
                deleted.append(event)
                current.remove_event(event.name)
        return updated, added, deleted

    def update_remote(self, node_id: str, service_info: dict[str, Any]) -> RemoteUpdate:
        """Apply a remote service definition and report which actions and events changed."""
        key = create_key(service_info["name"], parse_version(service_info.get("version")), node_id)
        with self._lock:
            entry = self._services.get(key)
            if entry is not None:
                current = entry.service
                current.update_from_map(service_info)
                updated_actions, new_actions, deleted_actions = self._update_actions(
                    service_info, current
                )
                updated_events, new_events, deleted_events = self._update_events(
                    service_info, current
                )
                return RemoteUpdate(
                    current,
                    False,
                    updated_actions,
                    new_actions,
                    deleted_actions,
                    updated_events,
                    new_events,
                    deleted_events,
                )
            service = create_service_from_map(service_info)
            service.node_id = node_id
            self.add(service)
        return RemoteUpdate(
            service,
            True,
            new_actions=list(service.actions),
            new_events=list(service.events),
        )