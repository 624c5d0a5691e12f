from servicemesh.service import Service
from servicemesh.services import ServiceCatalog, ServiceEntry, create_key


def _info(actions=("print",), events=("printed",), settings=None):
    return {
        "name": "printer",
        "version": "",
        "settings": settings or {},
        "metadata": {},
        "actions": {
            f"printer.{raw}": {"name": f"printer.{raw}", "rawName": raw} for raw in actions
        },
        "events": {name: {"name": name, "group": "printer"} for name in events},
    }


def _local(name="math", version="", node_id="node-a"):
    fullname = f"{version}.{name}" if version else name
    return Service(node_id=node_id, name=name, version=version, fullname=fullname)


def test_create_key_format():
    assert create_key("printer", "2", "node-a") == "node-a:printer:2"


def test_add_find_get():
    catalog = ServiceCatalog()
    service = _local()
    assert not catalog.find("math", "", "node-a")
    catalog.add(service)
    assert catalog.find("math", "", "node-a")
    assert not catalog.find("math", "", "node-b")
    assert catalog.find_by_name("math")
    assert not catalog.find_by_name("other")
    assert catalog.get("math", "", "node-a") is service
    assert catalog.get("math", "", "node-b") is None


def test_list_by_name_groups_by_fullname():
    catalog = ServiceCatalog()
    first = _local(node_id="node-a")
    second = _local(node_id="node-b")
    versioned = _local(name="calc", version="v2", node_id="node-a")
    for service in (first, second, versioned):
        catalog.add(service)
    grouped = catalog.list_by_name()
    assert set(grouped) == {"math", "v2.calc"}
    assert {entry.node_id for entry in grouped["math"]} == {"node-a", "node-b"}
    assert grouped["v2.calc"] == [ServiceEntry(versioned, "node-a")]


def test_remove_by_node():
    catalog = ServiceCatalog()
    kept = _local(node_id="node-b")
    removed = _local(name="calc", node_id="node-a")
    catalog.add(kept)
    catalog.add(removed)
    assert catalog.remove_by_node("node-a") == [removed]
    assert not catalog.find("calc", "", "node-a")
    assert catalog.find("math", "", "node-b")
    assert catalog.remove_by_node("node-a") == []


def test_update_remote_new_service():
    catalog = ServiceCatalog()
    update = catalog.update_remote("node-r", _info())
    assert update.is_new
    assert update.service.node_id == "node-r"
    assert [action.fullname for action in update.new_actions] == ["printer.print"]
    assert [event.name for event in update.new_events] == ["printed"]
    assert update.updated_actions == [] and update.deleted_actions == []
    assert catalog.find("printer", "", "node-r")


def test_update_remote_existing_service_reports_changes():
    catalog = ServiceCatalog()
    catalog.update_remote("node-r", _info())
    info = _info(actions=("print", "scan"), events=("scanned",), settings={"dpi": 300})
    update = catalog.update_remote("node-r", info)
    assert not update.is_new
    assert update.updated_actions == [info["actions"]["printer.print"]]
    assert [action.fullname for action in update.new_actions] == ["printer.scan"]
    assert update.deleted_actions == []
    assert [event.name for event in update.new_events] == ["scanned"]
    assert [event.name for event in update.deleted_events] == ["printed"]
    assert update.service.settings == {"dpi": 300}
    assert [event.name for event in update.service.events] == ["scanned"]


def test_update_remote_deletes_missing_actions():
    catalog = ServiceCatalog()
    catalog.update_remote("node-r", _info(actions=("print", "scan")))
    update = catalog.update_remote("node-r", _info(actions=("scan",)))
    assert [action.fullname for action in update.deleted_actions] == ["printer.print"]
    assert [action.fullname for action in update.service.actions] == ["printer.scan"]