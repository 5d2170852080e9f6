"""Shared fixtures: stub collaborators and an in-memory service container."""

import re
from unittest.mock import AsyncMock, Mock

import pytest

from valet.capability import Capability, Complexity, Keywords, Routing
from valet.config import Config
from valet.embeddings import EmbeddingUnavailable
from valet.services import ServiceContainer


class FakeEmbeddings:
    """Embedding backend backed by a fixed text -> vector table."""

    def __init__(self, vectors=None, available=True, default=(0.0, 0.0, 1.0)):
        self.vectors = dict(vectors or {})
        self.available = available
        self.default = list(default)
        self.calls = []

    def is_available(self):
        return self.available

    async def embed(self, text):
        self.calls.append(text)
        if not self.available:
            raise EmbeddingUnavailable("backend down")
        return list(self.vectors.get(text, self.default))

    def close(self):
        pass


def make_capability(name, *, patterns=(), keywords=None, examples=(), priority=None,
                    should_handle=None, parse_args=None, result=None, execute=None,
                    agent_tool=True):
    """Build a capability whose execute returns `result` (default: its name)."""
    async def _execute(args, context):
        return name if result is None else result

    routing = None
    if patterns or keywords or examples or priority is not None:
        routing = Routing(
            patterns=[re.compile(p, re.IGNORECASE) for p in patterns],
            keywords=Keywords(**keywords) if keywords else None,
            examples=examples,
            priority=priority,
        )
    return Capability(
        name=name,
        description=f"{name} capability",
        execute=execute or _execute,
        routing=routing,
        parse_args=parse_args,
        should_handle=should_handle,
        agent_tool=agent_tool,
    )


@pytest.fixture
def config():
    return Config(env={})


@pytest.fixture
def simple_classifier():
    classifier = Mock()
    classifier.classify = AsyncMock(return_value=Complexity.SIMPLE)
    return classifier


@pytest.fixture
def complex_classifier():
    classifier = Mock()
    classifier.classify = AsyncMock(return_value=Complexity.COMPLEX)
    return classifier


@pytest.fixture
def mock_llm():
    llm = Mock()
    llm.max_iterations = 3
    llm.health_timeout = 1.0
    llm.is_healthy.return_value = True
    llm.health.return_value = {"router": True, "fast": True, "thinking": False}
    llm.chat = AsyncMock(return_value="")
    llm.chat_with_tools = AsyncMock(return_value={"content": "", "tool_calls": []})
    return llm


@pytest.fixture
def services(config, mock_llm, simple_classifier):
    return ServiceContainer(
        config=config,
        llm=mock_llm,
        embeddings=FakeEmbeddings(available=False),
        classifier=simple_classifier,
    )
