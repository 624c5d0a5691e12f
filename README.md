# servicemesh

Building blocks for a microservice broker. With this package you can define
services, keep catalogs of the nodes, services, actions and events that are
known, and choose which endpoint should serve a call or receive an event.

## Installation

```
pip install .
```

To run the tests, install the `test` extra and run `pytest`:

```
pip install ".[test]"
pytest
```

## Modules

### `servicemesh.payload`

`Payload` is an immutable view over JSON-like data.

- `parse(text)` parses JSON text or bytes. Invalid JSON raises `ValueError`.
- `wrap(value)` wraps a Python value. `wrap(None)` gives a payload whose
  `exists()` is `False`.
- `error(*parts)` builds an error payload, `{"error": "<parts joined>"}`.

Reading values:

- `get(path, *default)` looks up a dotted path such as `"params.name"`. Array
  indexes and `#` (the length) are accepted. When the path is missing, the
  default is returned if one was given.
- `value`, `int`, `float`, `bool` and `time` convert the value.
- `string_array`, `int_array`, `float_array`, `bool_array`, `time_array`,
  `value_array`, `map_array`, `array`, `map`, `raw_map`, `at`, `first` and
  `length` work on containers.
- `items()` yields `(key, payload)` pairs.
- `is_error()` and `error()` read an `"error"` field.

Changing a payload always returns a new payload. The methods are `add`,
`add_many`, `add_item`, `remove`, `only`, `map_over` and `sort(field)`.
`to_json()` gives compact JSON text.

### `servicemesh.serializer`

`JSONSerializer` converts between payloads, maps and JSON:

- `bytes_to_payload` parses bytes or text.
- `reader_to_payload` reads a stream. Invalid JSON gives an error payload
  `"invalid json"`.
- `map_to_string` and `string_to_map` convert maps to JSON text and back.
- `payload_to_string` and `payload_to_bytes` serialize a payload. Containers
  become JSON; scalars become their plain text.
- `map_to_payload` turns a map into a payload.
- `payload_to_context_map` returns a map in which `level` and `timeout` are
  integers.

`clean_up_for_serialization(values)` removes callables from a map and decodes
bytes values to text.

### `servicemesh.strategy`

- `RandomStrategy().select(nodes)` picks a node at random.
- `RoundRobinStrategy().select(nodes)` picks nodes in turn.

Both return `None` for an empty sequence.

### `servicemesh.service`

`ServiceSchema`, `Mixin`, `ActionDef` and `EventDef` describe a service.

`from_schema(schema)` builds a `Service`:

- it applies the mixins;
- it prefixes action names with the versioned service name;
- it gives events without a group the service name as their group;
- it runs the `created` hook.

How mixins are merged:

- settings, metadata and hooks: the schema's values win;
- actions: mixin actions are added unless an action of the same name exists;
- `created`, `started` and `stopped` hooks: the mixin's hook runs first.

Other functions:

- `create_service_from_map(info)` rebuilds a service from the map that
  `Service.as_map()` produces.
- `parse_version` and `join_version_to_name` format versions and names.

### `servicemesh.objects`

`from_object(obj)` builds a service from a plain object:

- the name comes from a `name()` method or a `name` attribute;
- public methods become actions, except the reserved members, and the first
  letter of each action name is lowered;
- `created`, `started` and `stopped` methods become lifecycle hooks.

A method that takes several plain arguments receives them from an array
payload.

### `servicemesh.node`

`Node` holds what is known about a node:

- its IP list, hostname and services;
- its CPU readings and heartbeat time;
- whether it is available.

`NodeCatalog` keeps nodes by id:

- `info()` applies an info message. It returns whether the node was already
  known and whether it reconnected.
- `heart_beat()` passes a heartbeat to a known, available node.
- `expired_nodes(timeout)` lists the remote nodes that have not sent a
  heartbeat within `timeout` seconds.

### `servicemesh.services`

`ServiceCatalog` keeps services by node, name and version.

`update_remote(node_id, info)` applies a remote service definition. It returns
a `RemoteUpdate` that lists the actions and events that are new, updated or
deleted.

### `servicemesh.actions`

`ActionCatalog` keeps action endpoints by name.

- `next(name, strategy)` prefers a local endpoint; otherwise the strategy
  chooses.
- `next_from_node(name, node_id)` returns the endpoint on the given node.

`ActionEntry.invoke_local(context)` calls the handler with the context and its
`payload`. An exception in the handler comes back as an error payload built
from an `ActionError`.

### `servicemesh.events`

`EventCatalog` keeps event listeners by name.

`find(name, groups, prefer_local, local_only, strategy)` returns, for each
group:

- a local listener, when `prefer_local` is set and one exists;
- otherwise the single listener, when there is only one;
- otherwise the listener the strategy selects;
- all of the listeners when no strategy is given.

`EventEntry.emit_local(context)` calls the handler. A failure is logged, not
raised.

## Example

```python
from servicemesh.payload import parse
from servicemesh.service import ServiceSchema, ActionDef, from_schema
from servicemesh.actions import ActionCatalog
from servicemesh.strategy import RoundRobinStrategy

schema = ServiceSchema(
    name="math",
    actions=[ActionDef(name="add", handler=lambda ctx, p: p.get("a").int() + p.get("b").int())],
)
svc = from_schema(schema)
svc.node_id = "node-1"

catalog = ActionCatalog()
for action in svc.actions:
    catalog.add(action, svc, True)

entry = catalog.next("math.add", RoundRobinStrategy())
print(entry.target_node_id)          # node-1

params = parse('{"a": 2, "b": 3}')
print(params.get("a").int())         # 2
```

## What the package does not do

This is a library of parts, not a running broker:

- There is no transport. Nothing sends or receives messages between nodes.
- There is no registry process that reacts to INFO, HEARTBEAT or DISCONNECT
  messages, or that checks for expired nodes on a timer. You call the catalogs
  yourself.
- There is no built-in `$node` service.
- There is no command-line tool.