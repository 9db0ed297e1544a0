import pytest
from pydantic import ValidationError

from collabquest.config import get_settings


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("LLM_MODEL", "openai/gpt-4o-mini")
    monkeypatch.setenv("LLM_TIMEOUT", "12.5")
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.llm_model == "openai/gpt-4o-mini"
    assert settings.llm_timeout == 12.5
    assert settings.openrouter_api_key == "test-key"
    assert settings.peer_reply_delay == 0


@pytest.mark.parametrize(
    "name,value",
    [
        ("LLM_TIMEOUT", "soon"),
        ("LLM_TIMEOUT", "0"),
        ("PEER_REPLY_DELAY", "-1"),
    ],
)
def test_bad_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    get_settings.cache_clear()
    with pytest.raises(ValidationError):
        get_settings()
