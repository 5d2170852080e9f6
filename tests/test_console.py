"""Tests for the console's per-line dispatch."""

from unittest.mock import AsyncMock, Mock

import pytest

from valet.capabilities.system import HELP_OVERVIEW
from valet.console import NO_MATCH_REPLY, handle_line
from valet.router import CommandRouter


@pytest.fixture
def agent():
    agent = Mock()
    agent.handle_simple = AsyncMock(return_value="simple reply")
    agent.handle_complex = AsyncMock(return_value="complex reply")
    return agent


@pytest.mark.asyncio
async def test_routed_line_executes_capability(services, agent):
    router = CommandRouter()
    await router.initialize(services)

    assert await handle_line(router, agent, "help") == HELP_OVERVIEW
    agent.handle_simple.assert_not_awaited()


@pytest.mark.asyncio
async def test_blank_line_gets_no_match_reply(services, agent):
    router = CommandRouter()
    await router.initialize(services)

    assert await handle_line(router, agent, "  ") == NO_MATCH_REPLY


@pytest.mark.asyncio
async def test_unmatched_line_goes_to_simple_agent(services, agent):
    router = CommandRouter()
    await router.initialize(services)

    assert await handle_line(router, agent, "tell me a joke", "s1") == "simple reply"
    agent.handle_simple.assert_awaited_once_with("tell me a joke", "s1")


@pytest.mark.asyncio
async def test_complex_line_goes_to_complex_agent(services, agent, complex_classifier):
    services.classifier = complex_classifier
    router = CommandRouter()
    await router.initialize(services)

    assert await handle_line(router, agent, "plan my week") == "complex reply"
    agent.handle_complex.assert_awaited_once_with("plan my week", "default")
