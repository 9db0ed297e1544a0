import asyncio
import json

import pytest

from collabquest.models.matching import MatchingResponse, MatchResult, rank_matches
from collabquest.models.profile import SEED_CANDIDATES
from collabquest.models.project import initial_project
from collabquest.services.llm_client import AIServiceError, ErrorCode
from collabquest.services.matcher import build_matching_prompt, get_teammate_matches
from collabquest.test_profile import complete_profile


def match(user_id: str, score: float) -> MatchResult:
    return MatchResult(
        userId=user_id, score=score, confidence=80, reasoning="fits", complementarySkills=["X"]
    )


MODEL_REPLY = {
    "matches": [
        {"userId": "u3", "score": 71, "confidence": 60, "reasoning": "Design gap", "complementarySkills": ["Figma"]},
        {"userId": "u1", "score": 92, "confidence": 85, "reasoning": "Frontend gap", "complementarySkills": ["React Native"]},
    ]
}


def run_matching():
    return asyncio.run(get_teammate_matches(complete_profile(), initial_project(), SEED_CANDIDATES))


def test_rank_matches_sorts_by_score_descending():
    response = MatchingResponse(matches=[match("u1", 40), match("u2", 90), match("u3", 65)])
    ranked = rank_matches(response, exclude_ids=[], known_ids=["u1", "u2", "u3"])
    assert [m.user_id for m in ranked] == ["u2", "u3", "u1"]


def test_rank_matches_keeps_model_order_on_ties():
    response = MatchingResponse(matches=[match("u3", 50), match("u1", 50), match("u2", 50)])
    ranked = rank_matches(response, exclude_ids=[], known_ids=["u1", "u2", "u3"])
    assert [m.user_id for m in ranked] == ["u3", "u1", "u2"]


def test_rank_matches_drops_squad_members_and_unknown_ids():
    response = MatchingResponse(matches=[match("me", 99), match("u1", 80), match("ghost", 70), match("u2", 60)])
    ranked = rank_matches(response, exclude_ids=["me", "u1"], known_ids=["u1", "u2"])
    assert [m.user_id for m in ranked] == ["u2"]


def test_match_result_accepts_wire_names_and_python_names():
    wire = MatchResult.model_validate(MODEL_REPLY["matches"][0])
    assert wire.user_id == "u3" and wire.complementary_skills == ["Figma"]
    assert wire.model_dump(by_alias=True)["complementarySkills"] == ["Figma"]
    assert MatchResult(user_id="u1", score=1, confidence=1, reasoning="r").complementary_skills == []


def test_prompt_carries_profile_project_and_pool():
    prompt = build_matching_prompt(complete_profile(), initial_project(), SEED_CANDIDATES)
    assert "Microsoft Global Innovation Summit" in prompt
    assert "AI Eco-Tracker 2025" in prompt
    for candidate in SEED_CANDIDATES:
        assert candidate.id in prompt


def test_prompt_omits_event_line_without_hackathon():
    project = initial_project().model_copy(update={"hackathon_name": None})
    assert "Favour candidates" not in build_matching_prompt(complete_profile(), project, SEED_CANDIDATES)


def test_matches_are_consumed_verbatim(llm):
    llm.reply(json.dumps(MODEL_REPLY))
    response = run_matching()

    assert [m.user_id for m in response.matches] == ["u3", "u1"]
    assert response.matches[1].reasoning == "Frontend gap"
    assert llm.requests[0]["response_format"] == {"type": "json_object"}


def test_fenced_json_is_accepted(llm):
    llm.reply("```json\n" + json.dumps(MODEL_REPLY) + "\n```")
    assert len(run_matching().matches) == 2


def test_empty_or_matchless_reply_gives_no_matches(llm):
    llm.reply("")
    assert run_matching().matches == []

    llm.reply(json.dumps({"candidates": []}))
    assert run_matching().matches == []


def test_unparseable_reply_is_unknown_error(llm):
    llm.reply("Here are your matches: Sarah!")
    with pytest.raises(AIServiceError) as exc:
        run_matching()
    assert exc.value.code == ErrorCode.unknown_error


def test_wrongly_shaped_reply_is_unknown_error(llm):
    llm.reply(json.dumps({"matches": [{"userId": "u1"}]}))
    with pytest.raises(AIServiceError) as exc:
        run_matching()
    assert exc.value.code == ErrorCode.unknown_error


def test_missing_key_is_reported(no_api_key, llm):
    with pytest.raises(AIServiceError) as exc:
        run_matching()
    assert exc.value.code == ErrorCode.api_key_missing
    assert llm.requests == []
