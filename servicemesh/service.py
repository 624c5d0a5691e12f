"""Service definitions: schemas, mixins, actions, events and services."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable

ActionHandler = Callable[[Any, Any], Any]
EventHandler = Callable[[Any, Any], None]
CreatedFunc = Callable[["ServiceSchema", Any], None]
LifecycleFunc = Callable[[Any, "ServiceSchema"], None]


@dataclass
class ActionDef:
    """An action as declared in a service schema."""

    name: str
    handler: ActionHandler | None = None
    description: str = ""
    schema: Any = None


@dataclass
class EventDef:
    """An event listener as declared in a service schema."""

    name: str
    handler: EventHandler | None = None
    group: str = ""


@dataclass
class Mixin:
    """A reusable fragment merged into service schemas."""

    name: str = ""
    dependencies: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    hooks: dict[str, Any] = field(default_factory=dict)
    actions: list[ActionDef] = field(default_factory=list)
    events: list[EventDef] = field(default_factory=list)
    created: CreatedFunc | None = None
    started: LifecycleFunc | None = None
    stopped: LifecycleFunc | None = None


@dataclass
class ServiceSchema:
    """The declarative description of a service."""

    name: str = ""
    version: str = ""
    dependencies: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    hooks: dict[str, Any] = field(default_factory=dict)
    mixins: list[Mixin] = field(default_factory=list)
    actions: list[ActionDef] = field(default_factory=list)
    events: list[EventDef] = field(default_factory=list)
    created: CreatedFunc | None = None
    started: LifecycleFunc | None = None
    stopped: LifecycleFunc | None = None


@dataclass
class Action:
    """A registered action of a service."""

    name: str
    fullname: str
    handler: ActionHandler | None = None
    params: Any = None


@dataclass
class Event:
    """A registered event listener of a service."""

    name: str
    service_name: str
    group: str
    handler: EventHandler | None = None


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    number = Decimal(repr(value))
    sign = "-" if number < 0 else ""
    digits = "".join(str(d) for d in number.as_tuple().digits).rstrip("0") or "0"
    exponent = number.adjusted()
    if exponent < -4 or exponent >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "-" if exponent < 0 else "+"
        return f"{sign}{mantissa}e{exp_sign}{abs(exponent):02d}"
    decimals = max(len(digits) - (exponent + 1), 0)
    return f"{value:.{decimals}f}"


def parse_version(value: Any) -> str:
    """Render a version value (string, number or other) as text."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, int):
        return str(value)
    if value is None:
        return "<nil>"
    return str(value)


def join_version_to_name(name: str, version: str) -> str:
    return f"{version}.{name}" if version else name


def merge_settings(*args: dict[str, Any] | None) -> dict[str, Any]:
    """Merge maps left to right; later maps win, None is skipped."""
    result: dict[str, Any] = {}
    for settings in args:
        if settings is not None:
            result.update(settings)
    return result


def extend_actions(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    """Add the mixin's actions whose names the schema does not already have."""
    actions = list(schema.actions)
    for action in mixin.actions:
        if not any(existing.name == action.name for existing in actions):
            actions.append(action)
    return replace(schema, actions=actions)


def merge_dependencies(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    return replace(schema, dependencies=[*mixin.dependencies, *schema.dependencies])


def concatenate_events(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    """Append mixin events once for every schema event with a different name."""
    events = list(schema.events)
    for mixin_event in mixin.events:
        for service_event in list(events):
            if service_event.name != mixin_event.name:
                events.append(mixin_event)
    return replace(schema, events=events)


def extend_settings(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    return replace(schema, settings=merge_settings(mixin.settings, schema.settings))


def extend_metadata(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    return replace(schema, metadata=merge_settings(mixin.metadata, schema.metadata))


def extend_hooks(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    return replace(schema, hooks=merge_settings(mixin.hooks, schema.hooks))


def chain_created(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    """Run the mixin's created hook before the schema's own."""
    if mixin.created is None:
        return schema
    service_hook, mixin_hook = schema.created, mixin.created

    def created(svc: ServiceSchema, logger: Any) -> None:
        mixin_hook(svc, logger)
        if service_hook is not None:
            service_hook(svc, logger)

    return replace(schema, created=created)


def _chain_lifecycle(first: LifecycleFunc, second: LifecycleFunc | None) -> LifecycleFunc:
    def hook(context: Any, svc: ServiceSchema) -> None:
        first(context, svc)
        if second is not None:
            second(context, svc)

    return hook


def chain_started(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    """Run the mixin's started hook before the schema's own."""
    if mixin.started is None:
        return schema
    return replace(schema, started=_chain_lifecycle(mixin.started, schema.started))


def chain_stopped(schema: ServiceSchema, mixin: Mixin) -> ServiceSchema:
    """Run the mixin's stopped hook before the schema's own."""
    if mixin.stopped is None:
        return schema
    return replace(schema, stopped=_chain_lifecycle(mixin.stopped, schema.stopped))


_MIXIN_STEPS = (
    extend_actions,
    merge_dependencies,
    concatenate_events,
    extend_settings,
    extend_metadata,
    extend_hooks,
    chain_created,
    chain_started,
    chain_stopped,
)


def apply_mixins(schema: ServiceSchema) -> ServiceSchema:
    """Merge every mixin of the schema into it, in order."""
    for mixin in schema.mixins:
        for step in _MIXIN_STEPS:
            schema = step(schema, mixin)
    return schema


def create_service_event(
    event_name: str, service_name: str, group: str, handler: EventHandler | None
) -> Event:
    return Event(event_name, service_name, group, handler)


def create_service_action(
    service_name: str, action_name: str, handler: ActionHandler | None, params: Any
) -> Action:
    return Action(action_name, f"{service_name}.{action_name}", handler, params)


def is_internal_action(action: Action) -> bool:
    return action.name.startswith("$")


def is_internal_event(event: Event) -> bool:
    return event.name.startswith("$")


@dataclass
class Service:
    """A service instance: its identity, settings, actions, events and hooks."""

    node_id: str = ""
    fullname: str = ""
    name: str = ""
    version: str = ""
    dependencies: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    actions: list[Action] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    created: CreatedFunc | None = None
    started: LifecycleFunc | None = None
    stopped: LifecycleFunc | None = None
    schema: ServiceSchema | None = None
    logger: logging.Logger | None = None

    def summary(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version, "nodeID": self.node_id}

    def as_map(self) -> dict[str, Any]:
        """Export the service info; internal actions and events ($...) are left out."""
        if not self.node_id:
            raise ValueError("no service.nodeID")
        actions = {
            action.fullname: {"name": action.fullname, "rawName": action.name, "params": {}}
            for action in self.actions
            if not is_internal_action(action)
        }
        events = {
            event.name: {"name": event.name, "group": event.group}
            for event in self.events
            if not is_internal_event(event)
        }
        return {
            "name": self.name,
            "version": self.version,
            "settings": self.settings,
            "metadata": self.metadata,
            "nodeID": self.node_id,
            "actions": actions,
            "events": events,
        }

    def add_action_map(self, action_info: dict[str, Any]) -> Action:
        action = create_service_action(self.fullname, action_info["rawName"], None, None)
        self.actions.append(action)
        return action

    def add_event_map(self, event_info: dict[str, Any]) -> Event:
        group = event_info["group"] if "group" in event_info else self.name
        event = Event(name=event_info["name"], service_name=self.name, group=group)
        self.events.append(event)
        return event

    def remove_action(self, fullname: str) -> None:
        self.actions = [action for action in self.actions if action.fullname != fullname]

    def remove_event(self, name: str) -> None:
        self.events = [event for event in self.events if event.name != name]

    def update_from_map(self, service_info: dict[str, Any]) -> None:
        self.settings = service_info["settings"]
        self.metadata = service_info["metadata"]

    def add_settings(self, settings: dict[str, Any]) -> None:
        self.settings = merge_settings(self.settings, settings)

    def add_metadata(self, metadata: dict[str, Any]) -> None:
        self.metadata = merge_settings(self.metadata, metadata)

    def start(self, context: Any) -> None:
        """Run the started hook with the current settings and metadata."""
        if self.started is not None and self.schema is not None:
            self.schema.settings = self.settings
            self.schema.metadata = self.metadata
            self.started(context, self.schema)

    def stop(self, context: Any) -> None:
        if self.stopped is not None and self.schema is not None:
            self.stopped(context, self.schema)

    def _populate_from_schema(self) -> None:
        schema = self.schema
        self.name = schema.name
        self.version = schema.version
        self.fullname = join_version_to_name(self.name, self.version)
        self.dependencies = list(schema.dependencies)
        self.settings = schema.settings if schema.settings is not None else {}
        self.metadata = schema.metadata if schema.metadata is not None else {}
        self.actions = [
            create_service_action(self.fullname, action.name, action.handler, action.schema)
            for action in schema.actions
        ]
        self.events = [
            Event(event.name, self.name, event.group or self.name, event.handler)
            for event in schema.events
        ]
        self.created = schema.created
        self.started = schema.started
        self.stopped = schema.stopped

    def _populate_from_map(self, service_info: dict[str, Any]) -> None:
        if "nodeID" in service_info:
            self.node_id = service_info["nodeID"]
        self.version = parse_version(service_info.get("version"))
        self.name = service_info["name"]
        self.fullname = join_version_to_name(self.name, self.version)
        self.settings = service_info["settings"]
        self.metadata = service_info["metadata"]
        for action_info in service_info["actions"].values():
            self.add_action_map(action_info)
        for event_info in service_info["events"].values():
            self.add_event_map(event_info)


def from_schema(schema: ServiceSchema, logger: logging.Logger | None = None) -> Service:
    """Build a service from a schema, applying its mixins and running its created hook."""
    if schema.mixins:
        schema = apply_mixins(schema)
    else:
        schema = replace(schema)
    if logger is None:
        logger = logging.getLogger(f"servicemesh.service.{schema.name}")
    service = Service(schema=schema, logger=logger)
    service._populate_from_schema()
    if not service.name:
        raise ValueError("Service name can't be empty! Maybe it is not a valid Service schema.")
    if service.created is not None:
        service.created(service.schema, service.logger)
    return service


def create_service_from_map(service_info: dict[str, Any]) -> Service:
    """Build a service from the map another node published."""
    service = Service()
    service._populate_from_map(service_info)
    if not service.name:
        raise ValueError("Service name can't be empty! Maybe it is not a valid Service schema.")
    return service