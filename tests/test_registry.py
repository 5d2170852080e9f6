"""Tests for CapabilityRegistry invariants and auto-discovery."""

import pytest

from tests.conftest import make_capability
from valet.capability import RegistryError
from valet.capability_registry import CapabilityRegistry, discover_capabilities, get_registry


def test_by_priority_is_stable_descending():
    caps = [
        make_capability("a", patterns=[r"^a$"], priority=10),
        make_capability("b", patterns=[r"^b$"], priority=50),
        make_capability("c", patterns=[r"^c$"], priority=10),
        make_capability("d"),
    ]
    registry = CapabilityRegistry(caps)

    assert [c.name for c in registry.by_priority] == ["b", "a", "c", "d"]
    assert [c.name for c in registry] == ["b", "a", "c", "d"]
    assert [c.name for c in registry.capabilities] == ["a", "b", "c", "d"]


def test_lookup_by_name():
    registry = CapabilityRegistry([make_capability("a"), make_capability("b")])

    assert registry.get("b").name == "b"
    assert registry.get("missing") is None
    assert "a" in registry
    assert "missing" not in registry
    assert len(registry) == 2


def test_duplicate_names_rejected():
    with pytest.raises(RegistryError, match="Duplicate"):
        CapabilityRegistry([make_capability("a"), make_capability("a")])


def test_patterns_without_priority_rejected():
    with pytest.raises(RegistryError, match="no priority"):
        CapabilityRegistry([make_capability("a", patterns=[r"^a$"])])


def test_describe_and_tool_schemas():
    registry = CapabilityRegistry([make_capability("a"), make_capability("b")])

    assert registry.describe() == "- a: a capability\n- b: b capability"
    schemas = registry.tool_schemas()
    assert schemas[0] == {
        "type": "function",
        "function": {
            "name": "a",
            "description": "a capability",
            "parameters": {"type": "object", "properties": {}},
        },
    }


def test_discovery_finds_bundled_capabilities():
    names = {c.name for c in discover_capabilities()}

    assert {
        "help", "status", "quit", "get_time", "get_date",
        "view_next_actions", "add_task", "complete_task", "capture",
        "set_reminder", "resolve_reminder_time", "list_reminders", "cancel_reminder",
        "take_note", "note_dictation", "list_notes",
    } <= names


def test_bundled_registry_is_valid_and_cached():
    registry = get_registry()

    assert registry is get_registry()
    priorities = [c.priority for c in registry.by_priority]
    assert priorities == sorted(priorities, reverse=True)
    for cap in registry:
        if cap.patterns:
            assert cap.routing.priority is not None


def test_agent_tools_skip_follow_up_handlers_and_user_only():
    async def pending(text, context):
        return False

    registry = CapabilityRegistry([
        make_capability("a"),
        make_capability("dictation", should_handle=pending),
        make_capability("leave", agent_tool=False),
    ])

    assert [c.name for c in registry.agent_tools] == ["a"]
    assert [s["function"]["name"] for s in registry.tool_schemas()] == ["a"]
    assert registry.describe(agent_only=True) == "- a: a capability"
    assert "- leave: leave capability" in registry.describe()


def test_bundled_agent_tools_exclude_quit_and_follow_ups():
    registry = CapabilityRegistry(discover_capabilities())
    tool_names = {s["function"]["name"] for s in registry.tool_schemas()}

    assert tool_names.isdisjoint({"quit", "resolve_reminder_time", "note_dictation"})
    assert {"get_time", "add_task", "set_reminder", "take_note"} <= tool_names
    assert "quit" in registry
