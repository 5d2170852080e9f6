"""Tests for the model-tier Agent."""

import json
from unittest.mock import AsyncMock

import pytest

from tests.conftest import make_capability
from valet.agent import UNAVAILABLE_REPLY, Agent, parse_tool_reply, strip_protocol
from valet.capability_registry import CapabilityRegistry
from valet.llm_service import LLMUnavailable


def tool_call(call_id, name, arguments):
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": json.dumps(arguments)},
    }


@pytest.fixture
def recorded():
    return []


@pytest.fixture
def registry(recorded):
    async def echo(args, context):
        recorded.append((args, context.session_id))
        return f"echo {args.get('text', '')}"

    async def broken(args, context):
        raise RuntimeError("store offline")

    return CapabilityRegistry([
        make_capability("echo", execute=echo),
        make_capability("broken", execute=broken),
    ])


def test_parse_tool_reply():
    assert parse_tool_reply('TOOL: echo\nARGS: {"text": "hi"}') == ("echo", {"text": "hi"})
    assert parse_tool_reply("TOOL: echo\nARGS: {not json}") == ("echo", {})
    assert parse_tool_reply("TOOL: echo") == ("echo", {})
    assert parse_tool_reply("Just chatting.") == (None, {})


def test_strip_protocol():
    assert strip_protocol("Sure thing.\nTOOL: nope\nARGS: {}") == "Sure thing."


@pytest.mark.asyncio
async def test_simple_executes_named_capability(services, registry, recorded):
    services.llm.chat = AsyncMock(return_value='TOOL: echo\nARGS: {"text": "hi"}')
    agent = Agent(services, registry)

    reply = await agent.handle_simple("say hi", session_id="s9")

    assert reply == "echo hi"
    assert recorded == [({"text": "hi"}, "s9")]
    messages = services.llm.chat.call_args[0][0]
    assert "- echo: echo capability" in messages[0]["content"]
    assert services.llm.chat.call_args.kwargs["tier"] == "fast"


@pytest.mark.asyncio
async def test_simple_returns_conversation_text(services, registry):
    services.llm.chat = AsyncMock(return_value="Hello! How can I help?")
    agent = Agent(services, registry)

    assert await agent.handle_simple("hi") == "Hello! How can I help?"


@pytest.mark.asyncio
async def test_simple_unknown_tool_falls_back_to_text(services, registry):
    services.llm.chat = AsyncMock(return_value="Let me check.\nTOOL: weather\nARGS: {}")
    agent = Agent(services, registry)

    assert await agent.handle_simple("weather?") == "Let me check."


@pytest.mark.asyncio
async def test_simple_transport_failure(services, registry):
    services.llm.chat = AsyncMock(side_effect=LLMUnavailable("down"))
    agent = Agent(services, registry)

    assert await agent.handle_simple("hi") == UNAVAILABLE_REPLY


@pytest.mark.asyncio
async def test_complex_loops_through_tool_calls(services, registry, recorded):
    services.llm.chat_with_tools = AsyncMock(side_effect=[
        {"content": "", "tool_calls": [tool_call("c1", "echo", {"text": "one"})]},
        {"content": "", "tool_calls": [tool_call("c2", "broken", {})]},
        {"content": "All done.", "tool_calls": []},
    ])
    agent = Agent(services, registry)

    reply = await agent.handle_complex("do several things", session_id="s1")

    assert reply == "All done."
    assert recorded == [({"text": "one"}, "s1")]

    final_messages = services.llm.chat_with_tools.call_args[0][0]
    tool_messages = [m for m in final_messages if m["role"] == "tool"]
    assert tool_messages[0] == {"role": "tool", "tool_call_id": "c1", "content": "echo one"}
    assert tool_messages[1]["content"] == "Error executing broken: store offline"
    assert services.llm.chat_with_tools.call_args.kwargs["tier"] == "thinking"
    tools = services.llm.chat_with_tools.call_args[0][1]
    assert [t["function"]["name"] for t in tools] == ["echo", "broken"]


@pytest.mark.asyncio
async def test_complex_unknown_tool_is_reported(services, registry):
    services.llm.chat_with_tools = AsyncMock(side_effect=[
        {"content": "", "tool_calls": [tool_call("c1", "teleport", {})]},
        {"content": "Can't do that.", "tool_calls": []},
    ])
    agent = Agent(services, registry)

    assert await agent.handle_complex("teleport me") == "Can't do that."
    messages = services.llm.chat_with_tools.call_args[0][0]
    assert messages[-1]["content"] == "Unknown tool: teleport"


@pytest.mark.asyncio
async def test_complex_stops_at_max_iterations(services, registry):
    services.llm.max_iterations = 2
    services.llm.chat_with_tools = AsyncMock(return_value={
        "content": "", "tool_calls": [tool_call("c", "echo", {"text": "again"})],
    })
    agent = Agent(services, registry)

    reply = await agent.handle_complex("loop forever")

    assert "step limit" in reply
    assert services.llm.chat_with_tools.await_count == 2


@pytest.mark.asyncio
async def test_complex_transport_failure(services, registry):
    services.llm.chat_with_tools = AsyncMock(side_effect=LLMUnavailable("down"))
    agent = Agent(services, registry)

    assert await agent.handle_complex("plan my week") == UNAVAILABLE_REPLY


@pytest.fixture
def guarded_registry(recorded):
    async def record(args, context):
        recorded.append(context.session_id)
        return "ran"

    async def pending(text, context):
        return True

    return CapabilityRegistry([
        make_capability("echo"),
        make_capability("quit", execute=record, agent_tool=False),
        make_capability("note_dictation", execute=record, should_handle=pending),
    ])


@pytest.mark.asyncio
async def test_simple_never_runs_user_only_capabilities(services, guarded_registry, recorded):
    services.llm.chat = AsyncMock(return_value="Goodbye!\nTOOL: quit\nARGS: {}")
    agent = Agent(services, guarded_registry)

    assert await agent.handle_simple("I'm done") == "Goodbye!"
    assert recorded == []
    prompt = services.llm.chat.call_args[0][0][0]["content"]
    assert "- echo: echo capability" in prompt
    assert "quit" not in prompt
    assert "note_dictation" not in prompt


@pytest.mark.asyncio
async def test_complex_offers_and_runs_only_agent_tools(services, guarded_registry, recorded):
    services.llm.chat_with_tools = AsyncMock(side_effect=[
        {"content": "", "tool_calls": [tool_call("c1", "note_dictation", {})]},
        {"content": "Stopped.", "tool_calls": []},
    ])
    agent = Agent(services, guarded_registry)

    assert await agent.handle_complex("finish the note") == "Stopped."
    assert recorded == []
    tools = services.llm.chat_with_tools.call_args[0][1]
    assert [t["function"]["name"] for t in tools] == ["echo"]
    messages = services.llm.chat_with_tools.call_args[0][0]
    assert messages[-1]["content"] == "Unknown tool: note_dictation"
