from enum import Enum
from typing import Optional

from pydantic import BaseModel

from collabquest.models.matching import MatchResult


class SwipeDirection(str, Enum):
    left = "left"
    right = "right"


class SwipeRequest(BaseModel):
    direction: SwipeDirection


class SwipeDeck(BaseModel):
    """The ranked matches a session is swiping through. Never persisted."""
    matches: list[MatchResult] = []
    index: int = 0
    finished: bool = False

    @classmethod
    def from_matches(cls, matches: list[MatchResult]) -> "SwipeDeck":
        return cls(matches=matches, index=0, finished=len(matches) == 0)

    def current(self) -> Optional[MatchResult]:
        if self.finished or self.index >= len(self.matches):
            return None
        return self.matches[self.index]

    def advance(self) -> None:
        if self.index < len(self.matches) - 1:
            self.index += 1
        else:
            self.finished = True


class DeckRegistry:
    """In-process decks keyed by session id."""

    def __init__(self):
        self.decks: dict[str, SwipeDeck] = {}

    def get(self, session_id: str) -> Optional[SwipeDeck]:
        return self.decks.get(session_id)

    def put(self, session_id: str, deck: SwipeDeck) -> None:
        self.decks[session_id] = deck

    def drop(self, session_id: str) -> None:
        self.decks.pop(session_id, None)
