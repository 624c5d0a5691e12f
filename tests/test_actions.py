from dataclasses import dataclass
from typing import Any

import pytest

from servicemesh.actions import ActionCatalog, ActionError
from servicemesh.service import Service, create_service_action
from servicemesh.strategy import RandomStrategy, RoundRobinStrategy


@dataclass
class Ctx:
    action_name: str
    payload: Any = None


def handler(ctx, params):
    return "default action result"


@pytest.fixture
def strategy():
    return RandomStrategy()


def test_next_finds_action_by_name(strategy):
    catalog = ActionCatalog()
    svc = Service(node_id="node-test-1")
    catalog.add(create_service_action("people", "create", lambda c, p: "msg", None), svc, True)
    entry = catalog.next("people.create", strategy)
    assert entry is not None
    assert entry.action.fullname == "people.create"


def test_add_local_action(strategy):
    catalog = ActionCatalog()
    assert catalog.next("bank.credit", strategy) is None
    svc = Service(node_id="node-test-1")
    catalog.add(create_service_action("bank", "credit", handler, None), svc, True)
    entry = catalog.next("bank.credit", strategy)
    assert entry is not None
    assert entry.is_local is True


def test_next_and_next_from_node(strategy):
    catalog = ActionCatalog()
    svc = Service(node_id="node-test-1")
    catalog.add(create_service_action("bank", "credit", handler, None), svc, True)
    assert catalog.next("bank.credit", strategy).is_local is True
    assert catalog.next("user.signUp", strategy) is None

    catalog.add(create_service_action("user", "signUp", handler, None), svc, True)
    assert catalog.next("user.signUp", strategy).is_local is True

    svc.node_id = "node-test-2"
    catalog.add(create_service_action("user", "signUp", handler, None), svc, False)

    assert catalog.next_from_node("user.signUp", "node-test-1").is_local is True
    assert catalog.next_from_node("user.signUp", "node-test-2").is_local is False
    assert catalog.next_from_node("user.signUp", "invalid node id") is None


def test_next_prefers_local_over_remote():
    catalog = ActionCatalog()
    catalog.add(create_service_action("a", "b", handler, None), Service(node_id="n2"), False)
    catalog.add(create_service_action("a", "b", handler, None), Service(node_id="n1"), True)
    entry = catalog.next("a.b", RoundRobinStrategy())
    assert entry.target_node_id == "n1"


def test_next_uses_strategy_for_remote_entries():
    catalog = ActionCatalog()
    catalog.add(create_service_action("a", "b", handler, None), Service(node_id="n2"), False)
    catalog.add(create_service_action("a", "b", handler, None), Service(node_id="n3"), False)
    rr = RoundRobinStrategy()
    picked = [catalog.next("a.b", rr).target_node_id for _ in range(3)]
    assert picked == ["n2", "n3", "n2"]


def test_versioned_service_prefixes_name():
    catalog = ActionCatalog()
    svc = Service(node_id="n1", name="bank", version="2")
    catalog.add(create_service_action("bank", "credit", handler, None), svc, True)
    assert catalog.find("v2.bank.credit") is not None
    assert catalog.find("bank.credit") is None


def test_versioned_fullname_not_prefixed_again():
    catalog = ActionCatalog()
    svc = Service(node_id="n1", name="bank", version="2")
    catalog.add(create_service_action("2.bank", "credit", handler, None), svc, True)
    assert list(catalog.list_by_name()) == ["2.bank.credit"]


def test_remove_by_node_drops_empty_names():
    catalog = ActionCatalog()
    catalog.add(create_service_action("a", "b", handler, None), Service(node_id="n1"), True)
    catalog.add(create_service_action("a", "c", handler, None), Service(node_id="n1"), True)
    catalog.add(create_service_action("a", "c", handler, None), Service(node_id="n2"), False)
    catalog.remove_by_node("n1")
    assert catalog.find("a.b") is None
    assert [e.target_node_id for e in catalog.find("a.c")] == ["n2"]


def test_remove_single_action():
    catalog = ActionCatalog()
    catalog.add(create_service_action("a", "b", handler, None), Service(node_id="n1"), True)
    catalog.add(create_service_action("a", "b", handler, None), Service(node_id="n2"), False)
    catalog.remove("n1", "a.b")
    assert [e.target_node_id for e in catalog.find("a.b")] == ["n2"]
    catalog.remove("n2", "a.b")
    assert catalog.next("a.b", RandomStrategy()) is None


def test_update_replaces_params_for_node():
    catalog = ActionCatalog()
    action = create_service_action("a", "b", handler, None)
    catalog.add(action, Service(node_id="n1"), False)
    catalog.update("n1", "a.b", {"name": "a.b", "params": {"x": "number"}})
    assert catalog.find("a.b")[0].action.params == {"x": "number"}
    assert action.params is None


def test_invoke_local_returns_result_payload():
    catalog = ActionCatalog()
    action = create_service_action("math", "double", lambda c, p: p * 2, None)
    catalog.add(action, Service(node_id="n1"), True)
    entry = catalog.next("math.double", RandomStrategy())
    result = entry.invoke_local(Ctx("math.double", 21))
    assert result.value() == 42


def test_invoke_local_turns_exception_into_error_payload():
    def failing(ctx, params):
        raise ValueError("boom")

    catalog = ActionCatalog()
    catalog.add(create_service_action("x", "fail", failing, None), Service(node_id="n1"), True)
    result = catalog.next("x.fail", RandomStrategy()).invoke_local(Ctx("x.fail"))
    assert result.is_error()
    assert str(result.error()) == "boom"


def test_action_error_attributes():
    err = ActionError("failed", "stack text", "credit")
    assert str(err) == "failed"
    assert err.stack == "stack text"
    assert err.action == "credit"