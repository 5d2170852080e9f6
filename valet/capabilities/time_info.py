"""Capability definitions: time_info, current local time and date."""

import re
from datetime import datetime

from valet.capability import Capability, Keywords, Routing


def format_time(now: datetime) -> str:
    """12-hour clock, e.g. '3:07 PM'."""
    hour = now.hour % 12 or 12
    period = "AM" if now.hour < 12 else "PM"
    return f"{hour}:{now.minute:02d} {period}"


def format_date(now: datetime) -> str:
    """e.g. 'Sunday, October 18th, 2026'."""
    day = now.day
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{now.strftime('%A')}, {now.strftime('%B')} {day}{suffix}, {now.year}"


async def _get_time(args, context):
    now = datetime.now()
    if args.get("include_date"):
        return f"It's {format_time(now)} on {format_date(now)}."
    return f"It's {format_time(now)}."


async def _get_date(args, context):
    return f"Today is {format_date(datetime.now())}."


get_time = Capability(
    name="get_time",
    description="Get the current local time",
    routing=Routing(
        patterns=[
            re.compile(r"^(what('s| is) the )?time( is it)?\??$", re.IGNORECASE),
            re.compile(r"^what time is it\??$", re.IGNORECASE),
        ],
        keywords=Keywords(verbs=["tell", "what's"], nouns=["time", "current time"]),
        examples=["what time is it", "what's the time", "tell me the time", "current time"],
        priority=60,
    ),
    execute=_get_time,
    parameters={
        "type": "object",
        "properties": {
            "include_date": {
                "type": "boolean",
                "description": "Set true only when the user also asks for the date.",
            },
        },
    },
)

get_date = Capability(
    name="get_date",
    description="Get today's date",
    routing=Routing(
        patterns=[
            re.compile(r"^(what('s| is) )?(the |today's )?date( today)?\??$", re.IGNORECASE),
            re.compile(r"^what day is it( today)?\??$", re.IGNORECASE),
        ],
        keywords=Keywords(verbs=["tell", "what's"], nouns=["date", "today's date"]),
        examples=["what's the date", "what is the date", "what day is it", "today's date"],
        priority=60,
    ),
    execute=_get_date,
)


CAPABILITIES = [get_time, get_date]
