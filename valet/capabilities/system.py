"""Capability definitions: system (help, status, quit)."""

import re
import time

from valet.capability import Capability, Keywords, Routing

EXIT_SENTINEL = "__EXIT__"

HELP_OVERVIEW = """
**Valet Commands**

Type `help <topic>` for details on any section.

**Tasks** — next actions and inbox (help tasks)
**Reminders** — timed reminders (help reminders)
**Notes** — dictate notes (help notes)
**System** — time, date, status, quit
""".strip()

HELP_TOPICS = {
    "tasks": """
**Tasks**

  show next actions       List active tasks by context
  tasks                   Same as above
  add task <text>         Add a task (@context, +project)
  done <n>                Complete task by number
  done <partial title>    Complete by partial match
  capture <text>          Quick capture to inbox
""".strip(),
    "reminders": """
**Reminders**

  remind me to <what> at <time>     e.g. remind me to call mom at 5pm
  remind me to <what> in <n> minutes
  list reminders
  cancel reminder <what>

If the time has no am/pm, Valet asks which one you meant.
""".strip(),
    "notes": """
**Notes**

  take a note [title]     Start dictation; every line is added
  done / end note         Save the note
  cancel                  Discard the note in progress
  list notes
""".strip(),
}


def _parse_help(text, match):
    topic = match.group(1).lower() if match and match.lastindex else ""
    return {"topic": topic}


async def _help(args, context):
    topic = args.get("topic", "")
    if not topic:
        return HELP_OVERVIEW
    return HELP_TOPICS.get(topic, f"No help for '{topic}'.\n\n{HELP_OVERVIEW}")


help_capability = Capability(
    name="help",
    description="Show available commands",
    routing=Routing(
        patterns=[
            re.compile(r"^help$", re.IGNORECASE),
            re.compile(r"^help\s+(\w+)$", re.IGNORECASE),
            re.compile(r"^\?$"),
        ],
        examples=["what can you do", "show me the commands"],
        priority=200,
    ),
    parse_args=_parse_help,
    execute=_help,
    parameters={
        "type": "object",
        "properties": {
            "topic": {"type": "string", "enum": sorted(HELP_TOPICS)},
        },
    },
)


async def _status(args, context):
    services = context.services
    uptime = int(time.time() - services.started_at)
    hours, rem = divmod(uptime, 3600)
    minutes = rem // 60

    health = services.llm.health()
    tiers = ", ".join(f"{tier} {'up' if ok else 'down'}" for tier, ok in health.items())
    embeddings = "up" if services.embeddings.is_available() else "down"

    lines = [
        "**Status**",
        f"  Uptime: {hours}h {minutes}m",
        f"  Model tiers: {tiers}",
        f"  Embeddings: {embeddings}",
        f"  Active tasks: {len(services.tasks.list('active'))}",
        f"  Inbox: {len(services.tasks.list('inbox'))}",
        f"  Pending reminders: {len(services.reminders.list_pending())}",
    ]
    return "\n".join(lines)


status_capability = Capability(
    name="status",
    description="Show system status and model tier health",
    routing=Routing(
        patterns=[re.compile(r"^(system\s+)?status$", re.IGNORECASE)],
        keywords=Keywords(verbs=["show", "check"], nouns=["status", "health"]),
        priority=150,
    ),
    execute=_status,
)


async def _quit(args, context):
    context.services.sessions.end_session(context.session_id)
    return EXIT_SENTINEL


quit_capability = Capability(
    name="quit",
    description="End the session",
    routing=Routing(
        patterns=[re.compile(r"^(quit|exit|bye|goodbye)$", re.IGNORECASE)],
        priority=200,
    ),
    execute=_quit,
    agent_tool=False,
)


CAPABILITIES = [help_capability, status_capability, quit_capability]
