import asyncio
import logging
import random
from typing import Optional

from collabquest.config import get_settings
from collabquest.models import state
from collabquest.models.profile import UserProfile
from collabquest.models.project import Project
from collabquest.models.team import ChatMessage, append_message, make_message
from collabquest.services.llm_client import AIServiceError, ErrorCode, complete, has_api_key
from collabquest.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 8

OFFLINE_REPLY = "Hey! I'm here, but the AI service is currently unavailable. Let's sync soon!"
EMPTY_REPLY = "Sounds like a solid plan. I'm on it!"
FAILED_REPLY = "That sounds good to me. I'm excited to start!"

# session id -> name of the teammate currently "typing"
typing_members: dict[str, str] = {}
# sessions with a reply run scheduled or in progress
pending_replies: set[str] = set()


def build_peer_prompt(
    peer: UserProfile,
    project: Project,
    history: list[ChatMessage],
    new_message: str,
) -> str:
    event = f"We are competing in the {project.hackathon_name}." if project.hackathon_name else ""
    transcript = "\n".join(f"{m.sender_name}: {m.text}" for m in history[-HISTORY_WINDOW:])
    return f"""You are {peer.name}, a student teammate in a hackathon.
Bio: {peer.bio}
Skills: {', '.join(peer.skills)}
Interests: {', '.join(peer.interests)}

Project: {project.title}
Mission: {project.description}
{event}

Recent chat:
{transcript}

Your teammate just said: "{new_message}"

Reply as {peer.name}. Stay in character, bring up your own expertise where it helps,
be encouraging and proactive. Casual student tone, at most 25 words."""


async def simulate_peer_response(
    peer: UserProfile,
    project: Project,
    history: list[ChatMessage],
    new_message: str,
) -> str:
    """One in-character reply from a teammate. Never raises."""
    if not has_api_key():
        return OFFLINE_REPLY
    try:
        text = await complete(build_peer_prompt(peer, project, history, new_message), temperature=0.9)
    except AIServiceError as e:
        logger.info("Peer reply for %s fell back (%s)", peer.id, e.code.value)
        return EMPTY_REPLY if e.code == ErrorCode.empty_response else FAILED_REPLY
    return text.strip() or EMPTY_REPLY


def choose_responders(peers: list[UserProfile], rng=random) -> list[UserProfile]:
    """Half the time up to three peers chime in, otherwise just one."""
    if not peers:
        return []
    count = min(3, len(peers)) if rng.random() > 0.5 else 1
    return rng.sample(peers, count)


def is_typing(session_id: str) -> Optional[str]:
    return typing_members.get(session_id)


def claim_replies(session_id: str) -> bool:
    """Mark a reply run as pending. False if one is already under way."""
    if session_id in pending_replies:
        return False
    pending_replies.add(session_id)
    return True


def release_replies(session_id: str) -> None:
    pending_replies.discard(session_id)


async def run_peer_replies(
    session_id: str,
    current_user_id: str,
    project: Project,
    history: list[ChatMessage],
    new_message: str,
    ws_manager: ConnectionManager,
) -> None:
    """Have a few squad peers answer in turn, persisting each reply as it lands.

    The session stays busy from start to finish, between responders too.
    """
    pending_replies.add(session_id)
    try:
        await _reply_in_turn(session_id, current_user_id, project, history, new_message, ws_manager)
    finally:
        release_replies(session_id)


async def _reply_in_turn(session_id, current_user_id, project, history, new_message, ws_manager):
    settings = get_settings()
    squad = await state.get_active_squad(session_id)
    if squad is None:
        return

    peers = [m for m in squad.members if m.id != current_user_id]
    for responder in choose_responders(peers):
        typing_members[session_id] = responder.name
        await ws_manager.send(session_id, {"type": "typing", "member": responder.name})
        try:
            await asyncio.sleep(settings.peer_reply_delay + random.random() * settings.peer_reply_jitter)
            text = await simulate_peer_response(responder, project, history, new_message)

            # The squad may have been disbanded or cleared while we waited
            squad = await state.get_active_squad(session_id)
            if squad is None:
                return
            reply = make_message(responder, text)
            await state.write_value(session_id, state.ACTIVE_SQUAD, append_message(squad, reply))
            await ws_manager.send(session_id, {"type": "message", "message": reply.model_dump(mode="json")})
        finally:
            typing_members.pop(session_id, None)
            await ws_manager.send(session_id, {"type": "typing", "member": None})
