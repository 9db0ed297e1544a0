"""Per-session key/value persistence for the client's working state.

Each value is a JSON blob under one of a few fixed keys. There is no schema
versioning: a blob that no longer parses is logged and treated as missing.
Writes overwrite, so the last write wins.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from collabquest.db import get_db
from collabquest.models.profile import UserProfile
from collabquest.models.project import Project, initial_project
from collabquest.models.team import Team

logger = logging.getLogger(__name__)

CURRENT_USER = "current_user"
CURRENT_PROJECT = "current_project"
ONBOARDING_DONE = "onboarding_done"
ACTIVE_SQUAD = "active_squad"

STATE_KEYS = (CURRENT_USER, CURRENT_PROJECT, ONBOARDING_DONE, ACTIVE_SQUAD)


class SessionState(BaseModel):
    """Everything a client needs to rehydrate on load."""
    session_id: str
    authenticated: bool
    current_user: Optional[UserProfile] = None
    current_project: Project
    onboarding_done: bool
    active_squad: Optional[Team] = None


# ── Raw blobs ───────────────────────────────────────────────────────────


def _check_key(key: str) -> None:
    if key not in STATE_KEYS:
        raise ValueError(f"Unknown state key: {key}")


async def read_value(session_id: str, key: str) -> Optional[Any]:
    """Return the decoded JSON stored under key, or None."""
    _check_key(key)
    db = get_db()
    doc = await db.app_state.find_one(
        {"session_id": session_id, "key": key}, {"_id": 0}
    )
    if doc is None:
        return None
    try:
        return json.loads(doc.get("value"))
    except (json.JSONDecodeError, TypeError):
        logger.warning("Discarding unreadable %s blob for session %s", key, session_id)
        return None


async def write_value(session_id: str, key: str, value: Any) -> None:
    _check_key(key)
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    db = get_db()
    await db.app_state.update_one(
        {"session_id": session_id, "key": key},
        {
            "$set": {
                "value": json.dumps(value),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        },
        upsert=True,
    )


async def remove_value(session_id: str, key: str) -> None:
    _check_key(key)
    db = get_db()
    await db.app_state.delete_one({"session_id": session_id, "key": key})


async def clear_session(session_id: str) -> None:
    db = get_db()
    await db.app_state.delete_many({"session_id": session_id})


# ── Typed accessors ─────────────────────────────────────────────────────


async def _read_model(session_id: str, key: str, model: type[BaseModel]):
    raw = await read_value(session_id, key)
    if raw is None:
        return None
    try:
        return model.model_validate(raw)
    except ValidationError:
        logger.warning("Discarding malformed %s blob for session %s", key, session_id)
        return None


async def get_current_user(session_id: str) -> Optional[UserProfile]:
    return await _read_model(session_id, CURRENT_USER, UserProfile)


async def get_current_project(session_id: str) -> Project:
    project = await _read_model(session_id, CURRENT_PROJECT, Project)
    return project or initial_project()


async def get_active_squad(session_id: str) -> Optional[Team]:
    return await _read_model(session_id, ACTIVE_SQUAD, Team)


async def load_session_state(session_id: str) -> SessionState:
    current_user = await get_current_user(session_id)
    return SessionState(
        session_id=session_id,
        authenticated=current_user is not None,
        current_user=current_user,
        current_project=await get_current_project(session_id),
        onboarding_done=bool(await read_value(session_id, ONBOARDING_DONE)),
        active_squad=await get_active_squad(session_id),
    )
