import logging
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, EmailStr, Field

from collabquest.db import get_db

logger = logging.getLogger(__name__)


# ── Enums ────────────────────────────────────────────────────────────────

class Role(str, Enum):
    frontend = "Frontend Developer"
    backend = "Backend Developer"
    ui_ux = "UI/UX Designer"
    product_manager = "Product Manager"
    data_scientist = "Data Scientist"
    marketing = "Marketing Lead"


# ── Nested models ────────────────────────────────────────────────────────

class SkillAssessment(BaseModel):
    skill: str
    score: int = Field(ge=0, le=100)


# ── Request / response schemas ──────────────────────────────────────────

class UserProfile(BaseModel):
    """A merit profile: the only input the matching engine sees about a person."""
    id: str
    name: str = ""
    email: Optional[EmailStr] = None
    skills: list[str] = []
    interests: list[str] = []
    availability: str = ""
    preferred_roles: list[Role] = []
    bio: str = ""
    avatar: str = ""
    portfolio_url: Optional[str] = None
    skill_assessments: list[SkillAssessment] = []
    location: Optional[str] = None
    timezone: Optional[str] = None
    domain_expertise: list[str] = []


class LoginRequest(BaseModel):
    """Body of POST /sessions/{sid}/login."""
    name: str = Field(min_length=1)
    email: EmailStr


class ProfileStatus(BaseModel):
    """A saved profile plus whether it unlocks matching."""
    profile: UserProfile
    complete: bool


# ── Helpers ─────────────────────────────────────────────────────────────

def is_profile_complete(profile: UserProfile) -> bool:
    return (
        len(profile.skills) >= 1
        and len(profile.interests) >= 1
        and len(profile.availability) > 0
        and len(profile.preferred_roles) >= 1
        and len(profile.portfolio_url or "") > 5
    )


def is_valid_url(url: str) -> bool:
    """Accept bare hosts like ``github.com/user`` by assuming https."""
    candidate = url if url.startswith("http") else f"https://{url}"
    try:
        host = urlparse(candidate).hostname
    except ValueError:
        return False
    return bool(host) and not any(c.isspace() for c in host)


def initial_profile() -> UserProfile:
    return UserProfile(
        id="me",
        bio="Searching for a mission-driven team to build impactful software.",
        avatar="https://picsum.photos/seed/alex-2025/200",
        portfolio_url="",
    )


# ── Candidate pool ──────────────────────────────────────────────────────

SEED_CANDIDATES: list[UserProfile] = [
    UserProfile(
        id="u1",
        name="Sarah Chen",
        skills=["React Native", "TypeScript", "Tailwind", "Azure Functions"],
        interests=["Sustainability", "Productivity Tools"],
        availability="10 hrs/week",
        preferred_roles=[Role.frontend, Role.ui_ux],
        bio="Frontend dev who loves building snappy apps. I have experience with Azure serverless and edge computing!",
        avatar="https://images.unsplash.com/photo-1494790108377-be9c29b29330?auto=format&fit=crop&q=80&w=200",
        portfolio_url="https://github.com/sarahchen",
        location="Remote",
        timezone="GMT+8",
    ),
    UserProfile(
        id="u2",
        name="Marcus Thorne",
        skills=["Python", "PyTorch", "C#", ".NET 9"],
        interests=["Climate Change", "Generative AI"],
        availability="15 hrs/week",
        preferred_roles=[Role.data_scientist, Role.backend],
        bio="Backend specialist focused on scalable ML pipelines. I love Microsoft tech stacks and modern data engineering.",
        avatar="https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?auto=format&fit=crop&q=80&w=200",
        portfolio_url="https://github.com/mthorne",
        location="Remote",
        timezone="GMT+0",
    ),
    UserProfile(
        id="u3",
        name="Elena Rodriguez",
        skills=["Figma", "Prototyping", "User Research"],
        interests=["Accessibility", "Education"],
        availability="5 hrs/week",
        preferred_roles=[Role.ui_ux],
        bio="Inclusive design is my core focus. Let's make this Microsoft project accessible to everyone!",
        avatar="https://images.unsplash.com/photo-1534528741775-53994a69daeb?auto=format&fit=crop&q=80&w=200",
        portfolio_url="https://behance.net/elena-r",
        location="Remote",
        timezone="GMT-5",
    ),
    UserProfile(
        id="u4",
        name="Devin Page",
        skills=["Rust", "Wasm", "Backend"],
        interests=["Performance", "Security"],
        availability="20 hrs/week",
        preferred_roles=[Role.backend],
        bio="Systems enthusiast. I ensure the infrastructure is robust, fast, and secure for 2025 scaling.",
        avatar="https://images.unsplash.com/photo-1500648767791-00dcc994a43e?auto=format&fit=crop&q=80&w=200",
        portfolio_url="https://github.com/dpage",
        location="Remote",
        timezone="GMT+1",
    ),
]


async def seed_candidates() -> int:
    """Insert the demo candidates if the pool is empty. Returns how many were added."""
    db = get_db()
    if await db.candidate_profiles.count_documents({}) > 0:
        return 0
    docs = [c.model_dump(mode="json") for c in SEED_CANDIDATES]
    await db.candidate_profiles.insert_many(docs)
    logger.info("Seeded %d candidate profiles", len(docs))
    return len(docs)


async def list_candidates() -> list[UserProfile]:
    db = get_db()
    cursor = db.candidate_profiles.find({}, {"_id": 0}).sort("id", 1)
    docs = await cursor.to_list(length=None)
    return [UserProfile(**doc) for doc in docs]


async def get_candidate(candidate_id: str) -> Optional[UserProfile]:
    """Fetch a single candidate by id. Returns None if not found."""
    db = get_db()
    doc = await db.candidate_profiles.find_one({"id": candidate_id}, {"_id": 0})
    if doc is None:
        return None
    return UserProfile(**doc)
