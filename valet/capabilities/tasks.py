"""Capability definitions: GTD next actions and inbox capture."""

import re

from valet.capability import Capability, Keywords, Routing

_CONTEXT_TAG = re.compile(r"@(\w+)")
_PROJECT_TAG = re.compile(r"\+(\w+)")
_ADD_PREFIX = re.compile(r"^(add|create|new)\s+(task|action|todo|to\s+list)\s*:?\s*", re.IGNORECASE)


def parse_task_text(description: str) -> dict:
    """Split inline @context and +project tags out of a task description."""
    args = {"title": description.strip(), "context": None, "project": None}

    context_match = _CONTEXT_TAG.search(description)
    if context_match:
        args["context"] = f"@{context_match.group(1).lower()}"
        description = _CONTEXT_TAG.sub("", description, count=1)

    project_match = _PROJECT_TAG.search(description)
    if project_match:
        args["project"] = project_match.group(1)
        description = _PROJECT_TAG.sub("", description, count=1)

    args["title"] = " ".join(description.split())
    return args


# ---------------------------------------------------------------------------
# View next actions
# ---------------------------------------------------------------------------

async def _view_next_actions(args, context):
    tasks = context.services.tasks.list("active")
    if not tasks:
        return "No next actions found. Your list is clear!"

    lines = [f"**Next Actions** ({len(tasks)})"]
    current_context = None
    for num, task in enumerate(tasks, start=1):
        ctx = task.context or "@uncategorized"
        if ctx != current_context:
            lines.append(f"\n{ctx}")
            current_context = ctx
        project = f" ({task.project})" if task.project else ""
        lines.append(f"  {num}. {task.title}{project}")
    return "\n".join(lines)


view_next_actions = Capability(
    name="view_next_actions",
    description="Display the current list of next actions",
    routing=Routing(
        patterns=[
            re.compile(r"^(show|list|view|display)\s+(my\s+)?(next\s+)?actions?$", re.IGNORECASE),
            re.compile(r"^next\s+actions?$", re.IGNORECASE),
            re.compile(r"^what('s| is| are)\s+(on\s+)?(my\s+)?(plate|list|todo)", re.IGNORECASE),
            re.compile(r"^tasks?$", re.IGNORECASE),
        ],
        keywords=Keywords(
            verbs=["show", "list", "view", "display", "see", "get"],
            nouns=["next actions", "tasks", "todos", "to-dos", "actions", "todo list"],
        ),
        examples=[
            "show next actions",
            "what's on my plate",
            "what do I need to do",
            "list my tasks",
        ],
        priority=100,
    ),
    execute=_view_next_actions,
)


# ---------------------------------------------------------------------------
# Add task
# ---------------------------------------------------------------------------

def _parse_add_task(text, match):
    if match:
        description = match.groups()[-1] or ""
    else:
        description = _ADD_PREFIX.sub("", text)
    return parse_task_text(description)


async def _add_task(args, context):
    title = (args.get("title") or "").strip()
    if not title:
        return "Please describe the task. Example: add task buy milk @errands"

    task = context.services.tasks.add(
        title,
        context=args.get("context"),
        project=args.get("project"),
    )
    extras = " ".join(x for x in (task.context, f"+{task.project}" if task.project else None) if x)
    return f"Added: {task.title}" + (f" {extras}" if extras else "")


add_task = Capability(
    name="add_task",
    description="Add a new task (supports @context and +project tags)",
    routing=Routing(
        patterns=[
            re.compile(r"^add\s+(task|action|todo)\s*:?\s*(.+)$", re.IGNORECASE),
            re.compile(r"^(new|create)\s+(task|action|todo)\s*:?\s*(.+)$", re.IGNORECASE),
            re.compile(r"^add\s+to\s+(tasks?|actions?|list)\s*:?\s*(.+)$", re.IGNORECASE),
        ],
        keywords=Keywords(
            verbs=["add", "create", "new", "make"],
            nouns=["task", "action", "todo", "item"],
        ),
        examples=["add task buy milk", "new action call dentist", "add a todo to review the budget"],
        priority=90,
    ),
    parse_args=_parse_add_task,
    execute=_add_task,
    parameters={
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "What needs doing"},
            "context": {"type": "string", "description": "GTD context such as @errands"},
            "project": {"type": "string", "description": "Project name"},
        },
        "required": ["title"],
    },
)


# ---------------------------------------------------------------------------
# Complete task
# ---------------------------------------------------------------------------

def _parse_complete_task(text, match):
    target = match.groups()[-1].strip() if match else ""
    return {"target": target}


async def _complete_task(args, context):
    store = context.services.tasks
    target = str(args.get("target", "")).strip()
    if not target:
        return "Which task? Example: done 2, or done buy milk"

    if target.isdigit():
        active = store.list("active")
        index = int(target) - 1
        if not 0 <= index < len(active):
            return f"No task number {target}. You have {len(active)} next actions."
        task = active[index]
    else:
        task = store.find_active(target)
        if task is None:
            return f"No active task matching \"{target}\"."

    store.complete(task.task_id)
    return f"Completed: {task.title}"


complete_task = Capability(
    name="complete_task",
    description="Mark a task done by number or partial title",
    routing=Routing(
        patterns=[
            re.compile(r"^(done|complete|completed|finish|finished)\s+(.+)$", re.IGNORECASE),
            re.compile(r"^check off\s+(.+)$", re.IGNORECASE),
        ],
        keywords=Keywords(verbs=["complete", "finish", "done"], nouns=["task"]),
        priority=85,
    ),
    parse_args=_parse_complete_task,
    execute=_complete_task,
    parameters={
        "type": "object",
        "properties": {
            "target": {"type": "string", "description": "Task number or part of its title"},
        },
        "required": ["target"],
    },
)


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------

def _parse_capture(text, match):
    return {"text": match.groups()[-1].strip() if match else text}


async def _capture(args, context):
    text = (args.get("text") or "").strip()
    if not text:
        return "Nothing to capture."
    context.services.tasks.add(text, status="inbox")
    inbox = len(context.services.tasks.list("inbox"))
    return f"Captured to inbox ({inbox} waiting)."


capture = Capability(
    name="capture",
    description="Quick-capture a thought to the inbox",
    routing=Routing(
        patterns=[re.compile(r"^capture\s*:?\s*(.+)$", re.IGNORECASE)],
        keywords=Keywords(verbs=["capture", "jot"], nouns=["inbox"]),
        priority=80,
    ),
    parse_args=_parse_capture,
    execute=_capture,
    parameters={
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
    },
)


CAPABILITIES = [view_next_actions, add_task, complete_task, capture]
