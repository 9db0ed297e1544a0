from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field


class MatchResult(BaseModel):
    """One candidate as scored by the external matching model.

    Field names follow the model's JSON contract (camelCase on the wire).
    """
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    score: float
    confidence: float
    reasoning: str
    complementary_skills: list[str] = Field(default_factory=list, alias="complementarySkills")


class MatchingResponse(BaseModel):
    matches: list[MatchResult] = []


def rank_matches(
    response: MatchingResponse,
    exclude_ids: Iterable[str],
    known_ids: Iterable[str],
) -> list[MatchResult]:
    """Drop people already on the squad and ids outside the pool, best score first."""
    excluded = set(exclude_ids)
    known = set(known_ids)
    kept = [
        m for m in response.matches
        if m.user_id not in excluded and m.user_id in known
    ]
    # sorted() is stable, so ties keep the model's order
    return sorted(kept, key=lambda m: m.score, reverse=True)
