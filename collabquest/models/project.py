from datetime import date
from typing import Optional

from pydantic import BaseModel

from collabquest.models.profile import Role


class Project(BaseModel):
    """The mission a lead is recruiting for."""
    id: str
    title: str
    description: str
    hackathon_name: Optional[str] = None
    required_roles: list[Role] = []
    tags: list[str] = []
    due_date: Optional[date] = None


class MissionUpdate(BaseModel):
    """Body of PUT /sessions/{sid}/squad/mission."""
    description: str


def initial_project() -> Project:
    return Project(
        id="p1",
        title="AI Eco-Tracker 2025",
        hackathon_name="Microsoft Global Innovation Summit",
        description=(
            "A mobile app that uses real-time computer vision to categorize "
            "household waste and suggest circular economy habits."
        ),
        required_roles=[Role.frontend, Role.data_scientist, Role.ui_ux],
        tags=["Sustainability", "Edge AI", "2025"],
        due_date=date(2025, 12, 15),
    )
