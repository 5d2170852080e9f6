"""
In-memory collaborator stores used by the bundled capabilities.

Tasks, reminders and notes live for the lifetime of the process. Each store
serializes its own writes; the router imposes no locking across requests.
"""

import itertools
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


# ---------------------------------------------------------------------------
# Tasks (GTD next actions + inbox)
# ---------------------------------------------------------------------------

@dataclass
class Task:
    task_id: int
    title: str
    context: Optional[str] = None   # "@errands"
    project: Optional[str] = None   # "website"
    status: str = "active"          # "active", "inbox", "done"
    created_at: float = field(default_factory=time.time)


class TaskStore:
    def __init__(self):
        self._tasks: Dict[int, Task] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, title: str, context: Optional[str] = None,
            project: Optional[str] = None, status: str = "active") -> Task:
        with self._lock:
            task = Task(next(self._ids), title, context, project, status)
            self._tasks[task.task_id] = task
            return task

    def list(self, status: str = "active") -> List[Task]:
        """Tasks with the given status, grouped by context then creation order."""
        with self._lock:
            tasks = [t for t in self._tasks.values() if t.status == status]
        return sorted(tasks, key=lambda t: (t.context or "@uncategorized", t.task_id))

    def complete(self, task_id: int) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status == "done":
                return None
            task.status = "done"
            return task

    def find_active(self, fragment: str) -> Optional[Task]:
        fragment = fragment.lower()
        for task in self.list("active"):
            if fragment in task.title.lower():
                return task
        return None


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------

@dataclass
class Reminder:
    reminder_id: int
    title: str
    due: datetime
    status: str = "pending"         # "pending", "cancelled"


class ReminderStore:
    def __init__(self):
        self._reminders: Dict[int, Reminder] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, title: str, due: datetime) -> Reminder:
        with self._lock:
            reminder = Reminder(next(self._ids), title, due)
            self._reminders[reminder.reminder_id] = reminder
            return reminder

    def list_pending(self) -> List[Reminder]:
        with self._lock:
            pending = [r for r in self._reminders.values() if r.status == "pending"]
        return sorted(pending, key=lambda r: r.due)

    def cancel_by_title(self, fragment: str) -> Optional[Reminder]:
        fragment = fragment.lower()
        with self._lock:
            for reminder in sorted(self._reminders.values(), key=lambda r: r.due):
                if reminder.status == "pending" and fragment in reminder.title.lower():
                    reminder.status = "cancelled"
                    return reminder
        return None


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

@dataclass
class Note:
    note_id: int
    title: str
    body: str
    created_at: float = field(default_factory=time.time)


class NoteStore:
    def __init__(self):
        self._notes: List[Note] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(self, title: str, lines: List[str]) -> Note:
        with self._lock:
            note = Note(next(self._ids), title, "\n".join(lines))
            self._notes.append(note)
            return note

    def list(self) -> List[Note]:
        with self._lock:
            return list(self._notes)
