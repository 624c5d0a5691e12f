"""Catalog of action endpoints and local action invocation."""

from __future__ import annotations

import logging
import threading
import traceback
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from .payload import Payload, wrap
from .service import Action, Service, join_version_to_name
from .strategy import Strategy

_log = logging.getLogger(__name__)


class ActionContext(Protocol):
    """What an action invocation needs from its context."""

    action_name: str
    payload: Any


class ActionError(Exception):
    """An action handler failed; carries the stack trace and the action name."""

    def __init__(self, message: str, stack: str = "", action: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.stack = stack
        self.action = action

    def __str__(self) -> str:
        return self.message


@dataclass
class ActionEntry:
    """An action endpoint on a node."""

    target_node_id: str
    action: Action
    is_local: bool
    service: Service
    logger: logging.Logger = field(default=_log, repr=False)

    def invoke_local(self, context: ActionContext) -> Payload:
        """Run the handler; a failure comes back as an error payload."""
        params = context.payload
        self.logger.debug("Before invoking action: %s params: %s", context.action_name, params)
        try:
            handler = self.action.handler
            if handler is None:
                raise RuntimeError(f"action {self.action.fullname} has no handler")
            result = handler(context, params)
        except Exception as exc:  # noqa: BLE001 - handler failures become error payloads
            stack = traceback.format_exc()
            self.logger.error(
                "Action failed: %s\n[Error]: %s\n[Stack Trace]: %s",
                context.action_name,
                exc,
                stack,
            )
            return wrap(ActionError(str(exc), stack, self.action.name))
        self.logger.debug("After invoking action: %s result: %s", context.action_name, result)
        return wrap(result)


class ActionCatalog:
    """Action endpoints grouped by action name."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._actions: dict[str, list[ActionEntry]] = {}
        self._lock = threading.Lock()
        self.logger = logger or _log

    def add(self, action: Action, service: Service, local: bool) -> None:
        """Register an action of a service; versioned services prefix the name with 'v<version>'."""
        entry = ActionEntry(service.node_id, action, local, service, self.logger)
        name = action.fullname
        version = service.version
        if version and not name.startswith(version):
            name = join_version_to_name(name, "v" + version)
        with self._lock:
            self._actions.setdefault(name, []).append(entry)

    def update(self, node_id: str, fullname: str, updates: dict[str, Any]) -> None:
        """Apply a new params schema, when given, to the node's endpoints of the action."""
        if "params" not in updates:
            return
        with self._lock:
            entries = self._actions.get(fullname)
            if not entries:
                return
            for entry in entries:
                if entry.target_node_id == node_id:
                    entry.action = replace(entry.action, params=updates["params"])

    def remove_by_node(self, node_id: str) -> None:
        """Drop every endpoint of the node; names left without endpoints disappear."""
        with self._lock:
            for name in list(self._actions):
                kept = [e for e in self._actions[name] if e.target_node_id != node_id]
                if kept:
                    self._actions[name] = kept
                else:
                    del self._actions[name]

    def remove(self, node_id: str, name: str) -> None:
        with self._lock:
            entries = self._actions.get(name)
            if entries is None:
                return
            kept = [e for e in entries if e.target_node_id != node_id]
            if kept:
                self._actions[name] = kept
            else:
                del self._actions[name]

    def next_from_node(self, action_name: str, node_id: str) -> ActionEntry | None:
        entries = self.find(action_name) or []
        return next((e for e in entries if e.target_node_id == node_id), None)

    def next(self, action_name: str, strategy: Strategy) -> ActionEntry | None:
        """Return the first local endpoint, else the one the strategy selects."""
        entries = self.find(action_name)
        if entries is None:
            self.logger.debug("ActionCatalog.next() action not found: %s", action_name)
            return None
        local = next((e for e in entries if e.is_local), None)
        if local is not None:
            return local
        selected = strategy.select(entries)
        if selected is None:
            self.logger.debug("ActionCatalog.next() no entries selected for name: %s", action_name)
        return selected

    def find(self, name: str) -> list[ActionEntry] | None:
        with self._lock:
            entries = self._actions.get(name)
            return list(entries) if entries is not None else None

    def list_by_name(self) -> dict[str, list[ActionEntry]]:
        with self._lock:
            return {name: list(entries) for name, entries in self._actions.items()}