"""Capability definitions: notes and dictation mode.

"take a note" opens a dictation flow for the session; every following line
is appended to the note (whatever it says) until "done" or "cancel".
"""

import re

from valet.capability import Capability, Keywords, Routing

FLOW = "note_dictation"

_FINISH = {"done", "end note", "save note", "finish note", "that's all"}
_CANCEL = {"cancel", "discard", "discard note", "never mind", "nevermind"}


# ---------------------------------------------------------------------------
# Start dictation
# ---------------------------------------------------------------------------

def _parse_take_note(text, match):
    title = match.group(2) if match and match.group(2) else ""
    return {"title": title.strip()}


async def _take_note(args, context):
    title = args.get("title") or "Untitled note"
    context.services.sessions.set_pending(
        context.session_id, FLOW, owner="note_dictation", title=title, lines=[],
    )
    return f"Dictating \"{title}\". Say 'done' to save or 'cancel' to discard."


take_note = Capability(
    name="take_note",
    description="Start dictating a note",
    routing=Routing(
        patterns=[
            re.compile(r"^(take|start|begin)\s+a\s+note(?:\s+(?:called|titled|about)\s+(.+))?$", re.IGNORECASE),
            re.compile(r"^(new)\s+note(?:\s*:\s*(.+))?$", re.IGNORECASE),
        ],
        keywords=Keywords(verbs=["take", "dictate", "start"], nouns=["note", "dictation"]),
        examples=["take a note", "I want to dictate a note", "start a new note"],
        priority=65,
    ),
    parse_args=_parse_take_note,
    execute=_take_note,
    parameters={
        "type": "object",
        "properties": {"title": {"type": "string"}},
    },
)


# ---------------------------------------------------------------------------
# Dictation continuation
# ---------------------------------------------------------------------------

async def _dictating(text, context):
    return context.services.sessions.is_pending(context.session_id, FLOW)


async def _note_dictation(args, context):
    sessions = context.services.sessions
    pending = sessions.get_pending(context.session_id, FLOW)
    if pending is None:
        return None

    line = args.get("__raw_input", context.input).strip()
    command = line.lower().rstrip(".!")

    if command in _CANCEL:
        sessions.clear_pending(context.session_id, FLOW)
        return "Note discarded."

    if command in _FINISH:
        sessions.clear_pending(context.session_id, FLOW)
        lines = pending.data["lines"]
        if not lines:
            return "Nothing was dictated, so no note was saved."
        note = context.services.notes.save(pending.data["title"], lines)
        return f"Saved \"{note.title}\" ({len(lines)} line{'s' if len(lines) != 1 else ''})."

    pending.data["lines"].append(line)
    return ""


note_dictation = Capability(
    name="note_dictation",
    description="Append dictated lines to the note in progress",
    routing=Routing(priority=300),
    should_handle=_dictating,
    execute=_note_dictation,
)


# ---------------------------------------------------------------------------
# List notes
# ---------------------------------------------------------------------------

async def _list_notes(args, context):
    notes = context.services.notes.list()
    if not notes:
        return "No notes yet. Say 'take a note' to start one."
    lines = [f"**Notes** ({len(notes)})"]
    for note in notes:
        first = note.body.splitlines()[0] if note.body else ""
        lines.append(f"  {note.note_id}. {note.title}: {first}")
    return "\n".join(lines)


list_notes = Capability(
    name="list_notes",
    description="List saved notes",
    routing=Routing(
        patterns=[re.compile(r"^(list|show)\s+(my\s+)?notes$", re.IGNORECASE)],
        keywords=Keywords(verbs=["list", "show"], nouns=["notes"]),
        priority=65,
    ),
    execute=_list_notes,
)


CAPABILITIES = [take_note, note_dictation, list_notes]
