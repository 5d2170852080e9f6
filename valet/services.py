"""
Service container — the collaborator bundle shared by every surface.

The router needs only `classifier` and `embeddings`; capabilities reach the
stores and session state through ExecutionContext.services.
"""

import logging
import time
from dataclasses import dataclass, field

from valet.complexity import ComplexityClassifier
from valet.embeddings import EmbeddingService
from valet.llm_service import LLMService
from valet.session_state import SessionStore
from valet.stores import NoteStore, ReminderStore, TaskStore

logger = logging.getLogger("valet.services")


@dataclass
class ServiceContainer:
    config: object

    # Infrastructure
    llm: object
    embeddings: object
    classifier: object

    # Conversation + data
    sessions: SessionStore = field(default_factory=SessionStore)
    tasks: TaskStore = field(default_factory=TaskStore)
    reminders: ReminderStore = field(default_factory=ReminderStore)
    notes: NoteStore = field(default_factory=NoteStore)

    started_at: float = field(default_factory=time.time)


async def init_services(config) -> ServiceContainer:
    """Create and initialize every service (infrastructure first)."""
    logger.info("Initializing services...")

    llm = LLMService(config)
    embeddings = EmbeddingService(config)

    await llm.initialize()
    await embeddings.initialize()

    classifier = ComplexityClassifier(llm, timeout=llm.health_timeout)

    services = ServiceContainer(
        config=config,
        llm=llm,
        embeddings=embeddings,
        classifier=classifier,
    )
    logger.info("All services initialized")
    return services


def close_services(services: ServiceContainer):
    logger.info("Closing services...")
    services.embeddings.close()
