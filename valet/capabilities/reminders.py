"""Capability definitions: reminders and the am/pm wizard.

When a reminder time has an hour but no am/pm ("remind me to call mom at
3"), set_reminder parks the half-built reminder in the session store and
asks. resolve_reminder_time then claims the next input for that session
through should_handle, so a bare "pm" is never routed anywhere else.
"""

import re
from datetime import datetime, timedelta
from typing import Optional

from dateutil import parser as dateutil_parser

from valet.capability import Capability, Keywords, Routing

FLOW = "reminder_time"

_RELATIVE = re.compile(r"\bin\s+(\d+)\s*(minutes?|mins?|hours?|hrs?)\b", re.IGNORECASE)
_CLOCK = re.compile(r"\bat\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)?(?=\s|$)", re.IGNORECASE)
_TOMORROW = re.compile(r"\btomorrow\b", re.IGNORECASE)
_MERIDIEM = re.compile(r"\b(am|pm|a\.m\.|p\.m\.|morning|afternoon|evening|tonight)(?!\w)", re.IGNORECASE)
_CANCEL = re.compile(r"^(cancel|never ?mind|forget it|stop)$", re.IGNORECASE)


class AmbiguousTime(Exception):
    """Hour given without am/pm."""

    def __init__(self, hour: int, minute: int, tomorrow: bool):
        super().__init__(f"{hour}:{minute:02d} needs am or pm")
        self.hour = hour
        self.minute = minute
        self.tomorrow = tomorrow


def _at(now: datetime, hour: int, minute: int, tomorrow: bool) -> datetime:
    due = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if tomorrow:
        due += timedelta(days=1)
    elif due <= now:
        due += timedelta(days=1)
    return due


def parse_reminder_time(text: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse natural time text ("in 20 minutes", "at 5pm", "tomorrow at 9:30am")

    Returns:
        The due datetime, or None if nothing parseable was found

    Raises:
        AmbiguousTime: a 12-hour clock time without am/pm
    """
    now = now or datetime.now()

    relative = _RELATIVE.search(text)
    if relative:
        amount = int(relative.group(1))
        unit = relative.group(2).lower()
        delta = timedelta(hours=amount) if unit.startswith("h") else timedelta(minutes=amount)
        return now + delta

    tomorrow = bool(_TOMORROW.search(text))
    clock = _CLOCK.search(text)
    if clock:
        hour = int(clock.group(1))
        minute = int(clock.group(2) or 0)
        meridiem = (clock.group(3) or "").replace(".", "").lower()
        if hour > 23 or minute > 59:
            return None
        if not meridiem:
            if 1 <= hour <= 12:
                raise AmbiguousTime(hour, minute, tomorrow)
            return _at(now, hour, minute, tomorrow)
        return _at(now, to_24h(hour, meridiem), minute, tomorrow)

    try:
        parsed = dateutil_parser.parse(text, fuzzy=True, default=now.replace(second=0, microsecond=0))
    except (ValueError, OverflowError):
        return None
    if parsed == now.replace(second=0, microsecond=0):
        return None
    if tomorrow and parsed.date() == now.date():
        parsed += timedelta(days=1)
    return parsed


def to_24h(hour: int, meridiem: str) -> int:
    hour = hour % 12
    return hour + 12 if meridiem.startswith("p") else hour


def meridiem_from_answer(text: str) -> Optional[str]:
    """Map an answer like 'pm', 'in the morning' or 'tonight' to 'am'/'pm'."""
    match = _MERIDIEM.search(text)
    if not match:
        return None
    word = match.group(1).replace(".", "").lower()
    if word in ("am", "morning"):
        return "am"
    return "pm"


def format_due(due: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    clock = due.strftime("%I:%M %p").lstrip("0")
    if due.date() == now.date():
        return f"today at {clock}"
    if due.date() == (now + timedelta(days=1)).date():
        return f"tomorrow at {clock}"
    return f"{due.strftime('%A, %B')} {due.day} at {clock}"


# ---------------------------------------------------------------------------
# Set reminder
# ---------------------------------------------------------------------------

_SET_PATTERN = re.compile(
    r"^remind me\s+(?:to\s+|about\s+)?(.+?)\s+((?:at|in|tomorrow|tonight)\b.*)$",
    re.IGNORECASE,
)


def _parse_set_reminder(text, match):
    if match:
        return {"title": match.group(1).strip(), "time_text": match.group(2).strip()}
    return {"title": "", "time_text": ""}


async def _set_reminder(args, context):
    title = (args.get("title") or "").strip()
    time_text = (args.get("time_text") or "").strip()
    if not title or not time_text:
        return "What should I remind you about, and when? Example: remind me to call mom at 5pm"

    services = context.services
    try:
        due = parse_reminder_time(time_text)
    except AmbiguousTime as e:
        services.sessions.set_pending(
            context.session_id, FLOW, owner="resolve_reminder_time",
            title=title, hour=e.hour, minute=e.minute, tomorrow=e.tomorrow,
        )
        return f"Is that {e.hour}:{e.minute:02d} AM or PM?"

    if due is None:
        return f"I couldn't understand the time \"{time_text}\"."

    reminder = services.reminders.add(title, due)
    return f"I'll remind you to {reminder.title} {format_due(reminder.due)}."


set_reminder = Capability(
    name="set_reminder",
    description="Set a reminder for a time (e.g. 'remind me to call mom at 5pm')",
    routing=Routing(
        patterns=[_SET_PATTERN],
        keywords=Keywords(verbs=["remind", "set"], nouns=["reminder"]),
        examples=[
            "remind me to take out the trash tomorrow at 6pm",
            "remind me in 30 minutes to check the oven",
            "set a reminder for my meeting at 3 pm",
        ],
        priority=70,
    ),
    parse_args=_parse_set_reminder,
    execute=_set_reminder,
    parameters={
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "What to be reminded about"},
            "time_text": {
                "type": "string",
                "description": "When, in natural language (e.g. 'at 5pm', 'in 30 minutes')",
            },
        },
        "required": ["title", "time_text"],
    },
)


# ---------------------------------------------------------------------------
# am/pm wizard continuation
# ---------------------------------------------------------------------------

async def _awaiting_meridiem(text, context):
    return context.services.sessions.is_pending(context.session_id, FLOW)


def _parse_meridiem(text, match):
    return {"meridiem": meridiem_from_answer(text), "cancel": bool(_CANCEL.match(text.strip()))}


async def _resolve_reminder_time(args, context):
    sessions = context.services.sessions
    pending = sessions.get_pending(context.session_id, FLOW)
    if pending is None:
        return None

    if args.get("cancel"):
        sessions.clear_pending(context.session_id, FLOW)
        return "Okay, I won't set that reminder."

    meridiem = args.get("meridiem")
    data = pending.data
    if not meridiem:
        return f"Sorry, was that {data['hour']}:{data['minute']:02d} AM or PM? (or say cancel)"

    sessions.clear_pending(context.session_id, FLOW)
    due = _at(datetime.now(), to_24h(data["hour"], meridiem), data["minute"], data["tomorrow"])
    reminder = context.services.reminders.add(data["title"], due)
    return f"I'll remind you to {reminder.title} {format_due(reminder.due)}."


resolve_reminder_time = Capability(
    name="resolve_reminder_time",
    description="Answer the am/pm question for a reminder being set",
    routing=Routing(priority=300),
    parse_args=_parse_meridiem,
    should_handle=_awaiting_meridiem,
    execute=_resolve_reminder_time,
)


# ---------------------------------------------------------------------------
# List / cancel
# ---------------------------------------------------------------------------

async def _list_reminders(args, context):
    reminders = context.services.reminders.list_pending()
    if not reminders:
        return "You have no upcoming reminders."
    now = datetime.now()
    lines = [f"**Reminders** ({len(reminders)})"]
    for reminder in reminders:
        lines.append(f"  - {reminder.title}: {format_due(reminder.due, now)}")
    return "\n".join(lines)


list_reminders = Capability(
    name="list_reminders",
    description="List upcoming reminders",
    routing=Routing(
        patterns=[
            re.compile(r"^(list|show)\s+(my\s+)?reminders$", re.IGNORECASE),
            re.compile(r"^reminders$", re.IGNORECASE),
        ],
        keywords=Keywords(verbs=["list", "show"], nouns=["reminders"]),
        examples=["what reminders do I have", "any upcoming reminders"],
        priority=72,
    ),
    execute=_list_reminders,
)


def _parse_cancel_reminder(text, match):
    return {"fragment": match.groups()[-1].strip() if match else ""}


async def _cancel_reminder(args, context):
    fragment = (args.get("fragment") or "").strip()
    if not fragment:
        return "Which reminder? Example: cancel reminder dentist"
    cancelled = context.services.reminders.cancel_by_title(fragment)
    if cancelled is None:
        return f"No pending reminder matching \"{fragment}\"."
    return f"Cancelled the reminder to {cancelled.title}."


cancel_reminder = Capability(
    name="cancel_reminder",
    description="Cancel a reminder by part of its title",
    routing=Routing(
        patterns=[
            re.compile(r"^(?:cancel|delete|remove)\s+(?:the\s+)?reminder\s+(?:about\s+|to\s+)?(.+)$", re.IGNORECASE),
            re.compile(r"^(?:cancel|delete|remove)\s+(?:the\s+|my\s+)?(.+?)\s+reminder$", re.IGNORECASE),
        ],
        priority=72,
    ),
    parse_args=_parse_cancel_reminder,
    execute=_cancel_reminder,
    parameters={
        "type": "object",
        "properties": {"fragment": {"type": "string"}},
        "required": ["fragment"],
    },
)


CAPABILITIES = [set_reminder, resolve_reminder_time, list_reminders, cancel_reminder]
