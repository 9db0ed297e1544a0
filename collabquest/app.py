import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from collabquest.config import get_settings
from collabquest.db import connect_db, close_db
from collabquest.models import state
from collabquest.models.matching import rank_matches
from collabquest.models.profile import (
    LoginRequest,
    ProfileStatus,
    UserProfile,
    get_candidate,
    initial_profile,
    is_profile_complete,
    is_valid_url,
    list_candidates,
    seed_candidates,
)
from collabquest.models.project import MissionUpdate, Project
from collabquest.models.team import (
    MessageCreate,
    SquadView,
    TaskDueDate,
    Team,
    append_message,
    clear_messages,
    launch_squad,
    make_message,
    set_task_due_date,
    toggle_task,
)
from collabquest.services.deck import DeckRegistry, SwipeDeck, SwipeDirection, SwipeRequest
from collabquest.services.llm_client import AIServiceError, ErrorCode
from collabquest.services.matcher import get_teammate_matches
from collabquest.services.peer_chat import claim_replies, is_typing, release_replies, run_peer_replies
from collabquest.services.skill_quiz import Quiz, QuizAnswer, get_quiz, grade_answer
from collabquest.services.verification import get_verification_summary
from collabquest.services.websocket_manager import ConnectionManager

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_db()
    await seed_candidates()
    yield
    await close_db()


app = FastAPI(title="CollabQuest API", lifespan=lifespan)
ws_manager = ConnectionManager()
decks = DeckRegistry()

_ERROR_STATUS = {
    ErrorCode.api_key_missing: 503,
    ErrorCode.rate_limit: 429,
}


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError):
    logger.error("AI service error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=_ERROR_STATUS.get(exc.code, 502),
        content={"detail": {"code": exc.code.value, "message": exc.message}},
    )


# ── Helpers ────────────────────────────────────────────────────────────


async def _require_user(sid: str) -> UserProfile:
    user = await state.get_current_user(sid)
    if user is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return user


async def _require_squad(sid: str) -> Team:
    squad = await state.get_active_squad(sid)
    if squad is None:
        raise HTTPException(status_code=404, detail="No active squad")
    return squad


def _require_deck(sid: str) -> SwipeDeck:
    deck = decks.get(sid)
    if deck is None:
        raise HTTPException(status_code=409, detail="Run matching first")
    return deck


# ── Candidate endpoints ────────────────────────────────────────────────


@app.get("/candidates", response_model=list[UserProfile])
async def read_candidates():
    return await list_candidates()


@app.get("/candidates/{candidate_id}", response_model=UserProfile)
async def read_candidate(candidate_id: str):
    candidate = await get_candidate(candidate_id)
    if candidate is None:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return candidate


# ── Session endpoints ──────────────────────────────────────────────────


@app.get("/sessions/{sid}/state", response_model=state.SessionState)
async def read_state(sid: str):
    return await state.load_session_state(sid)


@app.post("/sessions/{sid}/onboarding", status_code=204)
async def finish_onboarding(sid: str):
    await state.write_value(sid, state.ONBOARDING_DONE, True)


@app.post("/sessions/{sid}/login", response_model=UserProfile)
async def login(sid: str, body: LoginRequest):
    user = await state.get_current_user(sid) or initial_profile()
    user = user.model_copy(update={"name": body.name, "email": body.email})
    await state.write_value(sid, state.CURRENT_USER, user)
    return user


@app.post("/sessions/{sid}/logout", status_code=204)
async def logout(sid: str):
    """Forget everything stored for this session, onboarding flag included."""
    await state.clear_session(sid)
    decks.drop(sid)


# ── Profile endpoints ──────────────────────────────────────────────────


@app.put("/sessions/{sid}/profile", response_model=ProfileStatus)
async def save_profile(sid: str, body: UserProfile):
    current = await _require_user(sid)
    body = body.model_copy(update={"id": current.id})
    if body.portfolio_url and not is_valid_url(body.portfolio_url):
        raise HTTPException(status_code=422, detail="Cannot save with an invalid portfolio URL.")
    await state.write_value(sid, state.CURRENT_USER, body)
    return ProfileStatus(profile=body, complete=is_profile_complete(body))


class VerificationSummary(BaseModel):
    summary: str


@app.post("/sessions/{sid}/profile/verification", response_model=VerificationSummary)
async def verify_profile(sid: str):
    user = await _require_user(sid)
    if not is_profile_complete(user):
        raise HTTPException(status_code=400, detail="Please complete your profile first.")
    if not is_valid_url(user.portfolio_url or ""):
        raise HTTPException(status_code=400, detail="Please enter a valid URL (e.g., github.com/username)")
    return VerificationSummary(summary=await get_verification_summary(user))


@app.get("/quizzes/{skill}", response_model=Quiz)
async def read_quiz(skill: str):
    try:
        return get_quiz(skill)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No quiz for {skill}")


@app.post("/sessions/{sid}/profile/assessments", response_model=UserProfile)
async def answer_quiz(sid: str, body: QuizAnswer):
    user = await _require_user(sid)
    try:
        user = grade_answer(user, body.skill, body.selected)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No quiz for {body.skill}")
    await state.write_value(sid, state.CURRENT_USER, user)
    return user


# ── Project endpoints ──────────────────────────────────────────────────


@app.get("/sessions/{sid}/project", response_model=Project)
async def read_project(sid: str):
    return await state.get_current_project(sid)


@app.put("/sessions/{sid}/project", response_model=Project)
async def save_project(sid: str, body: Project):
    await state.write_value(sid, state.CURRENT_PROJECT, body)
    return body


# ── Matching endpoints ─────────────────────────────────────────────────


@app.post("/sessions/{sid}/matches", response_model=SwipeDeck)
async def run_matching(sid: str):
    user = await _require_user(sid)
    if not is_profile_complete(user):
        raise HTTPException(status_code=400, detail="Please complete your profile first.")

    project = await state.get_current_project(sid)
    squad = await state.get_active_squad(sid)
    pool = await list_candidates()

    response = await get_teammate_matches(user, project, pool)

    existing = [m.id for m in squad.members] if squad else [user.id]
    ranked = rank_matches(response, exclude_ids=existing, known_ids=[p.id for p in pool])
    logger.info("Session %s: %d of %d matches kept", sid, len(ranked), len(response.matches))

    deck = SwipeDeck.from_matches(ranked)
    decks.put(sid, deck)
    return deck


@app.get("/sessions/{sid}/deck", response_model=SwipeDeck)
async def read_deck(sid: str):
    return _require_deck(sid)


class SwipeOutcome(BaseModel):
    deck: SwipeDeck
    team: Optional[Team] = None


@app.post("/sessions/{sid}/swipe", response_model=SwipeOutcome)
async def swipe(sid: str, body: SwipeRequest):
    deck = _require_deck(sid)
    match = deck.current()
    if match is None:
        raise HTTPException(status_code=409, detail="No more candidates in this scan")

    team = None
    if body.direction == SwipeDirection.right:
        user = await _require_user(sid)
        partner = await get_candidate(match.user_id)
        if partner is None:
            raise HTTPException(status_code=404, detail="Candidate not found")
        project = await state.get_current_project(sid)
        team = launch_squad(await state.get_active_squad(sid), user, partner, project)
        await state.write_value(sid, state.ACTIVE_SQUAD, team)

    deck.advance()
    return SwipeOutcome(deck=deck, team=team)


# ── Squad endpoints ────────────────────────────────────────────────────


@app.get("/sessions/{sid}/squad", response_model=SquadView)
async def read_squad(sid: str):
    return SquadView(team=await _require_squad(sid), typing_member=is_typing(sid))


@app.delete("/sessions/{sid}/squad", status_code=204)
async def disband_squad(sid: str):
    await state.remove_value(sid, state.ACTIVE_SQUAD)


@app.post("/sessions/{sid}/squad/messages", response_model=Team, status_code=201)
async def send_squad_message(sid: str, body: MessageCreate, background_tasks: BackgroundTasks):
    text = body.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Message is empty")
    # Claimed before any await so a second message cannot slip in
    if not claim_replies(sid):
        raise HTTPException(status_code=409, detail="A teammate is still typing")

    scheduled = False
    try:
        user = await _require_user(sid)
        squad = await _require_squad(sid)
        squad = append_message(squad, make_message(user, text, fallback_name="Me"))
        await state.write_value(sid, state.ACTIVE_SQUAD, squad)

        if any(m.id != user.id for m in squad.members):
            project = await state.get_current_project(sid)
            background_tasks.add_task(
                run_peer_replies, sid, user.id, project, squad.messages, text, ws_manager
            )
            scheduled = True
    finally:
        if not scheduled:
            release_replies(sid)
    return squad


@app.delete("/sessions/{sid}/squad/messages", response_model=Team)
async def clear_squad_messages(sid: str):
    squad = clear_messages(await _require_squad(sid))
    await state.write_value(sid, state.ACTIVE_SQUAD, squad)
    return squad


@app.post("/sessions/{sid}/squad/tasks/{task_id}/toggle", response_model=Team)
async def toggle_squad_task(sid: str, task_id: str):
    try:
        squad = toggle_task(await _require_squad(sid), task_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Task not found")
    await state.write_value(sid, state.ACTIVE_SQUAD, squad)
    return squad


@app.put("/sessions/{sid}/squad/tasks/{task_id}/due-date", response_model=Team)
async def update_task_due_date(sid: str, task_id: str, body: TaskDueDate):
    try:
        squad = set_task_due_date(await _require_squad(sid), task_id, body.due_date)
    except KeyError:
        raise HTTPException(status_code=404, detail="Task not found")
    await state.write_value(sid, state.ACTIVE_SQUAD, squad)
    return squad


@app.put("/sessions/{sid}/squad/mission", response_model=Project)
async def update_mission(sid: str, body: MissionUpdate):
    await _require_squad(sid)
    project = await state.get_current_project(sid)
    project = project.model_copy(update={"description": body.description})
    await state.write_value(sid, state.CURRENT_PROJECT, project)
    return project


# ── WebSocket endpoint ─────────────────────────────────────────────────


@app.websocket("/ws/{sid}")
async def websocket_endpoint(websocket: WebSocket, sid: str):
    await ws_manager.connect(sid, websocket)
    try:
        while True:
            # Keep connection alive; client can send pings
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(sid, websocket)
