"""Catalog of event listeners and local event delivery."""

from __future__ import annotations

import logging
import threading
import traceback
from dataclasses import dataclass, replace
from typing import Any, Protocol, Sequence

from .service import Event, Service
from .strategy import Strategy

_log = logging.getLogger(__name__)


class EventContext(Protocol):
    """What an event delivery needs from its context."""

    event_name: str
    payload: Any


def match_group(event: Event, groups: Sequence[str] | None) -> bool:
    """True when no groups are given or the event's group is among them."""
    if not groups:
        return True
    return event.group in groups


@dataclass
class EventEntry:
    """An event listener on a node."""

    target_node_id: str
    service: Service
    event: Event
    is_local: bool

    def __str__(self) -> str:
        return (
            f"EventEntry Node -> {self.target_node_id} - Service: {self.event.service_name}"
            f" - Event Name: {self.event.name} - Group: {self.event.group}"
        )

    def emit_local(self, context: EventContext) -> None:
        """Call the local handler; a failing handler is logged, not raised."""
        _log.debug("Invoking local event: %s", context.event_name)
        try:
            handler = self.event.handler
            if handler is None:
                raise RuntimeError(f"event {self.event.name} has no handler")
            handler(context, context.payload)
        except Exception as exc:  # noqa: BLE001 - listener failures must not stop delivery
            _log.error(
                "Event handler failed :( event: %s error: %s\n[Stack Trace]: %s",
                context.event_name,
                exc,
                traceback.format_exc(),
            )
            return
        _log.debug("After invoking local event: %s", context.event_name)


class EventCatalog:
    """Event listeners grouped by event name."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._events: dict[str, list[EventEntry]] = {}
        self._lock = threading.Lock()
        self.logger = logger or _log

    def add(self, event: Event, service: Service, local: bool) -> None:
        entry = EventEntry(service.node_id, service, event, local)
        self.logger.debug("Add event name: %s serviceName: %s", event.name, event.service_name)
        with self._lock:
            self._events.setdefault(event.name, []).append(entry)

    def update(self, node_id: str, name: str, updates: dict[str, Any]) -> None:
        """Apply a changed group, when given, to the node's listeners of the event."""
        group = updates.get("group")
        if not isinstance(group, str):
            return
        with self._lock:
            for entry in self._events.get(name, []):
                if entry.target_node_id == node_id:
                    entry.event = replace(entry.event, group=group)

    def remove(self, node_id: str, name: str) -> None:
        with self._lock:
            entries = self._events.get(name)
            if entries is None:
                return
            self._events[name] = [e for e in entries if e.target_node_id != node_id]

    def remove_by_node(self, node_id: str) -> None:
        with self._lock:
            for name, entries in self._events.items():
                self._events[name] = [e for e in entries if e.target_node_id != node_id]

    def find(
        self,
        name: str,
        groups: Sequence[str] | None,
        prefer_local: bool,
        local_only: bool,
        strategy: Strategy | None,
    ) -> list[EventEntry]:
        """Pick the listeners to deliver to: per group a local one, the single one,
        the one the strategy selects, or all of them when there is no strategy."""
        with self._lock:
            entries = list(self._events.get(name, []))
        by_group: dict[str, list[EventEntry]] = {}
        for entry in entries:
            if local_only and not entry.is_local:
                continue
            if match_group(entry.event, groups):
                by_group.setdefault(entry.event.group, []).append(entry)
        result: list[EventEntry] = []
        for group_entries in by_group.values():
            local = next((e for e in group_entries if e.is_local), None)
            if prefer_local and local is not None:
                result.append(local)
            elif len(group_entries) == 1:
                result.append(group_entries[0])
            elif strategy is None:
                result.extend(group_entries)
            else:
                selected = strategy.select(group_entries)
                if selected is not None:
                    result.append(selected)
        return result

    def list_by_name(self) -> dict[str, list[EventEntry]]:
        with self._lock:
            return {name: list(entries) for name, entries in self._events.items()}

    def list(self) -> list[EventEntry]:
        with self._lock:
            return [entry for entries in self._events.values() for entry in entries]