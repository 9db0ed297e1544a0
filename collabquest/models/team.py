from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from collabquest.models.profile import UserProfile
from collabquest.models.project import Project


# ── Enums ────────────────────────────────────────────────────────────────

class TaskStatus(str, Enum):
    todo = "To-Do"
    in_progress = "In Progress"
    done = "Done"


# ── Nested models ────────────────────────────────────────────────────────

class ChatMessage(BaseModel):
    id: str
    sender_id: str
    sender_name: str
    text: str
    timestamp: datetime


class Task(BaseModel):
    id: str
    title: str
    status: TaskStatus = TaskStatus.todo
    due_date: Optional[datetime] = None


class Team(BaseModel):
    """A squad: the locally persisted team formed after accepting a match."""
    id: str
    project_name: str
    members: list[UserProfile] = []
    messages: list[ChatMessage] = []
    tasks: list[Task] = []


# ── Request / response schemas ──────────────────────────────────────────

class MessageCreate(BaseModel):
    """Body of POST /sessions/{sid}/squad/messages."""
    text: str = Field(min_length=1)


class TaskDueDate(BaseModel):
    """Body of PUT /sessions/{sid}/squad/tasks/{task_id}/due-date."""
    due_date: datetime


class SquadView(BaseModel):
    team: Team
    typing_member: Optional[str] = None


# ── Helpers ─────────────────────────────────────────────────────────────

def _now() -> datetime:
    return datetime.now(timezone.utc)


def make_message(sender: UserProfile, text: str, fallback_name: str = "") -> ChatMessage:
    return ChatMessage(
        id=f"msg-{uuid4().hex}",
        sender_id=sender.id,
        sender_name=sender.name or fallback_name,
        text=text,
        timestamp=_now(),
    )


def default_tasks(now: datetime) -> list[Task]:
    return [
        Task(
            id="t1",
            title="Initial Project Architecture",
            status=TaskStatus.in_progress,
            due_date=now + timedelta(days=3),
        ),
        Task(
            id="t2",
            title="Define MVP Features",
            status=TaskStatus.todo,
            due_date=now + timedelta(days=5),
        ),
    ]


# ── Mutations ───────────────────────────────────────────────────────────
# Each returns a new Team; callers persist the result.

def launch_squad(
    active: Optional[Team],
    current_user: UserProfile,
    partner: UserProfile,
    project: Project,
) -> Team:
    """Add an accepted partner to the active squad, or form a new one."""
    now = _now()
    members = list(active.members) if active else [current_user]
    if not any(m.id == partner.id for m in members):
        members.append(partner)

    intro = ChatMessage(
        id=f"init-{uuid4().hex}",
        sender_id=partner.id,
        sender_name=partner.name,
        text=f"Hey squad! I'm {partner.name}. Excited to join {project.title} and help out!",
        timestamp=now,
    )

    return Team(
        id=active.id if active else f"squad-{int(now.timestamp() * 1000)}",
        project_name=project.title,
        members=members,
        messages=[*(active.messages if active else []), intro],
        tasks=list(active.tasks) if active else default_tasks(now),
    )


def append_message(team: Team, message: ChatMessage) -> Team:
    return team.model_copy(update={"messages": [*team.messages, message]})


def clear_messages(team: Team) -> Team:
    return team.model_copy(update={"messages": []})


def _replace_task(team: Team, task_id: str, **changes) -> Team:
    tasks = []
    found = False
    for task in team.tasks:
        if task.id == task_id:
            task = task.model_copy(update=changes)
            found = True
        tasks.append(task)
    if not found:
        raise KeyError(task_id)
    return team.model_copy(update={"tasks": tasks})


def toggle_task(team: Team, task_id: str) -> Team:
    """Done flips back to To-Do; anything else becomes Done."""
    task = next((t for t in team.tasks if t.id == task_id), None)
    if task is None:
        raise KeyError(task_id)
    status = TaskStatus.todo if task.status == TaskStatus.done else TaskStatus.done
    return _replace_task(team, task_id, status=status)


def set_task_due_date(team: Team, task_id: str, due_date: datetime) -> Team:
    return _replace_task(team, task_id, due_date=due_date)
