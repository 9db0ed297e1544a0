import json
import logging

from pydantic import ValidationError

from collabquest.models.matching import MatchingResponse
from collabquest.models.profile import UserProfile
from collabquest.models.project import Project
from collabquest.services.llm_client import (
    AIServiceError,
    ErrorCode,
    complete,
    has_api_key,
    strip_fences,
)

logger = logging.getLogger(__name__)


def _profile_json(p: UserProfile) -> str:
    return json.dumps(p.model_dump(mode="json", exclude={"avatar"}))


def build_matching_prompt(
    current_user: UserProfile,
    project: Project,
    pool: list[UserProfile],
) -> str:
    event = (
        f"This is for the {project.hackathon_name} event. Favour candidates whose "
        f"skills or interests fit the tech that event usually rewards.\n"
        if project.hackathon_name
        else ""
    )
    candidates = "[" + ", ".join(_profile_json(p) for p in pool) + "]"

    return f"""You are the CollabQuest matching engine for student hackathon teams.

LEAD PROFILE:
{_profile_json(current_user)}

PROJECT:
{json.dumps(project.model_dump(mode="json"))}
{event}
CANDIDATES:
{candidates}

Rules:
1. Pick candidates who fill the gaps between the lead's skills and what the project needs.
2. Judge only on the listed skills, interests and availability. Do not infer anything else; ignore university and location.
3. In "reasoning", say which of the lead's gaps the candidate fills.

Return ONLY valid JSON shaped as
{{"matches": [{{"userId": str, "score": 0-100, "confidence": 0-100, "reasoning": str, "complementarySkills": [str]}}]}}
No markdown fences."""


async def get_teammate_matches(
    current_user: UserProfile,
    project: Project,
    pool: list[UserProfile],
) -> MatchingResponse:
    """Ask the external model to score every candidate in the pool for this lead."""
    if not has_api_key():
        raise AIServiceError(ErrorCode.api_key_missing)

    prompt = build_matching_prompt(current_user, project, pool)
    try:
        content = await complete(prompt, json_mode=True, temperature=0.2)
    except AIServiceError as e:
        if e.code == ErrorCode.empty_response:
            return MatchingResponse()
        raise

    try:
        data = json.loads(strip_fences(content))
    except json.JSONDecodeError as e:
        logger.warning("Matching reply was not JSON: %.200s", content)
        raise AIServiceError(ErrorCode.unknown_error, "matching reply was not JSON") from e

    if not isinstance(data, dict) or not data.get("matches"):
        return MatchingResponse()

    try:
        return MatchingResponse.model_validate(data)
    except ValidationError as e:
        logger.warning("Matching reply had an unexpected shape: %s", e)
        raise AIServiceError(ErrorCode.unknown_error, "matching reply had an unexpected shape") from e
