"""Build services from plain Python objects by inspecting their methods."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Sequence

from .payload import Payload, wrap
from .service import (
    ActionDef,
    CreatedFunc,
    LifecycleFunc,
    Service,
    ServiceSchema,
    from_schema,
    parse_version,
)

_RESERVED = frozenset(
    {
        "name",
        "version",
        "dependencies",
        "settings",
        "metadata",
        "mixins",
        "events",
        "created",
        "started",
        "stopped",
    }
)
_CONTEXT_NAMES = frozenset({"ctx", "context"})
_PAYLOAD_NAMES = frozenset({"params", "payload"})
_MISSING = object()
_NO_ANNOTATION = object()

ActionHandler = Callable[[Any, Any], Any]

_TEMPLATES: dict[tuple[str, ...], Callable[[Callable[..., Any]], ActionHandler]] = {
    ("context", "payload"): lambda method: lambda ctx, params: method(ctx, params),
    ("context",): lambda method: lambda ctx, params: method(ctx),
    ("payload",): lambda method: lambda ctx, params: method(params),
    (): lambda method: lambda ctx, params: method(),
}


def action_name(name: str) -> str:
    """Lower the first letter of a method name: SetLogRate becomes setLogRate."""
    if len(name) < 2:
        return name.lower()
    return name[0].lower() + name[1:]


def valid_action_name(name: str) -> bool:
    """Tell whether a method name may become an action (not a reserved member)."""
    return action_name(name) not in _RESERVED


def _positional(method: Callable[..., Any]) -> list[tuple[str, Any]]:
    """Return (name, annotation) for each positional parameter a caller supplies."""
    func = getattr(method, "__func__", None)
    bound = func is not None and getattr(method, "__self__", None) is not None
    if func is None:
        func = method
    code = getattr(func, "__code__", None)
    if code is None:
        raise TypeError(f"cannot inspect parameters of {method!r}")
    names = list(code.co_varnames[: code.co_argcount])
    if bound:
        names = names[1:]
    annotations = getattr(func, "__annotations__", None) or {}
    return [(name, annotations.get(name, _NO_ANNOTATION)) for name in names]


def _type_name(annotation: Any) -> str:
    if annotation is _NO_ANNOTATION:
        return ""
    if isinstance(annotation, str):
        return annotation.rsplit(".", 1)[-1]
    return getattr(annotation, "__name__", str(annotation))


def get_param_types(method: Callable[..., Any]) -> list[str]:
    """Return the type name of each positional parameter, in order."""
    return [_type_name(annotation) for _, annotation in _positional(method)]


def _kind(param: tuple[str, Any]) -> str | None:
    name, annotation = param
    type_name = _type_name(annotation)
    if type_name == "Payload" or (not type_name and name in _PAYLOAD_NAMES):
        return "payload"
    if type_name == "Context" or (not type_name and name in _CONTEXT_NAMES):
        return "context"
    return None


def handler_template(method: Callable[..., Any]) -> ActionHandler | None:
    """Adapt a method taking (context, params), (context), (params) or nothing."""
    try:
        params = _positional(method)
    except (TypeError, ValueError):
        return None
    template = _TEMPLATES.get(tuple(_kind(param) for param in params))
    return template(method) if template is not None else None


def _types_text(ptypes: Sequence[str]) -> str:
    return "[" + " ".join(ptypes) + "]"


def validate_args(ptypes: Sequence[str], payload: Any) -> None:
    """Raise ValueError when the payload cannot supply the expected arguments."""
    if not isinstance(payload, Payload):
        payload = wrap(payload)
    count = len(ptypes)
    if not payload.is_array() and count > 1:
        raise ValueError(
            f"This action requires arguments to be sent in an array. "
            f"#{count} arguments - types: {_types_text(ptypes)}"
        )
    if payload.length() != count and count > 1:
        raise ValueError(
            f"This action requires #{count} arguments - types: {_types_text(ptypes)}"
        )


def _payload_to_value(type_name: str, payload: Payload) -> Any:
    return payload if type_name == "Payload" else payload.value()


def build_args(ptypes: Sequence[str], payload: Any) -> list[Any]:
    """Turn a payload into call arguments, one per expected parameter type."""
    if not isinstance(payload, Payload):
        payload = wrap(payload)
    if payload.is_array():
        items = payload.array()
        if len(items) < len(ptypes):
            raise IndexError(f"expected {len(ptypes)} arguments, got {len(items)}")
        return [_payload_to_value(t, item) for t, item in zip(ptypes, items)]
    if payload.exists() and ptypes:
        return [_payload_to_value(ptypes[0], payload)]
    return []


def check_return(values: Sequence[Any] | None) -> Any:
    """Reduce returned values: nothing, the single value, a trailing error or an array payload."""
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    if isinstance(values[-1], BaseException):
        return values[-1]
    return wrap(list(values))


def variable_args_handler(method: Callable[..., Any]) -> ActionHandler:
    """Make a handler that spreads the payload over the method's parameters."""
    ptypes = get_param_types(method)

    def handler(ctx: Any, params: Any) -> Any:
        payload = params if isinstance(params, Payload) else wrap(params)
        try:
            validate_args(ptypes, payload)
        except ValueError as exc:
            return exc
        result = method(*build_args(ptypes, payload))
        if isinstance(result, tuple):
            return check_return(result)
        return result

    return handler


def wrap_action(name: str, method: Callable[..., Any]) -> ActionDef:
    """Create an action definition that invokes the given method."""
    handler = handler_template(method)
    if handler is None:
        handler = variable_args_handler(method)
    return ActionDef(name=action_name(name), handler=handler)


def extract_actions(obj: Any) -> list[ActionDef]:
    """Return an action for every public, non-reserved method of the object, by name."""
    actions = []
    for name in dir(obj):
        if name.startswith("_") or not valid_action_name(name):
            continue
        static = inspect.getattr_static(obj, name, None)
        if isinstance(static, (staticmethod, classmethod)) or inspect.isfunction(static):
            actions.append(wrap_action(name, getattr(obj, name)))
    return actions


def _lifecycle(obj: Any, attr: str) -> Callable[..., Any] | None:
    hook = getattr(obj, attr, None)
    if not callable(hook):
        return None
    try:
        takes_params = bool(_positional(hook))
    except (TypeError, ValueError):
        takes_params = True
    if takes_params:
        return hook

    def no_params(first: Any, second: Any) -> None:
        hook()

    return no_params


def extract_created(obj: Any) -> CreatedFunc | None:
    return _lifecycle(obj, "created")


def extract_started(obj: Any) -> LifecycleFunc | None:
    return _lifecycle(obj, "started")


def extract_stopped(obj: Any) -> LifecycleFunc | None:
    return _lifecycle(obj, "stopped")


def _member(obj: Any, attr: str) -> Any:
    value = getattr(obj, attr, _MISSING)
    if value is not _MISSING and inspect.isroutine(value):
        value = value()
    return value


def get_name(obj: Any) -> str:
    """Return the object's service name, from a name() method or a name attribute."""
    name = _member(obj, "name")
    if not isinstance(name, str):
        raise ValueError("Service instance must have a name() method or a name attribute")
    return name


def obj_to_schema(obj: Any) -> ServiceSchema:
    """Describe an object as a service schema."""
    schema = ServiceSchema(name=get_name(obj))
    version = _member(obj, "version")
    if version is not _MISSING:
        schema.version = parse_version(version)
    for attr in ("dependencies", "events", "mixins"):
        value = _member(obj, attr)
        if value is not _MISSING:
            setattr(schema, attr, list(value))
    for attr in ("metadata", "settings"):
        value = _member(obj, attr)
        if value is not _MISSING:
            setattr(schema, attr, dict(value))
    schema.actions = extract_actions(obj)
    schema.created = extract_created(obj)
    schema.started = extract_started(obj)
    schema.stopped = extract_stopped(obj)
    return schema


def from_object(obj: Any, logger: logging.Logger | None = None) -> Service:
    """Create a service from an object's name, members and methods."""
    return from_schema(obj_to_schema(obj), logger)