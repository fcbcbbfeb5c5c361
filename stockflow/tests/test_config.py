import pytest
from pydantic import ValidationError

from stockflow.config import Config, ConfigurationError


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(Config, "REMOTEAGENT_BASE_URL", "https://agents.example.com/api/v0")
    monkeypatch.setattr(Config, "REMOTEAGENT_TOKEN", "token")
    monkeypatch.setattr(Config, "REMOTEAGENT_AGENT_NAME", "stock-analyst")
    monkeypatch.setattr(Config, "REMOTEAGENT_CANVAS_AGENT_NAME", "canvas-agent")


def test_validate_lists_every_missing_variable(monkeypatch):
    monkeypatch.setattr(Config, "REMOTEAGENT_BASE_URL", None)
    monkeypatch.setattr(Config, "REMOTEAGENT_TOKEN", None)
    monkeypatch.setattr(Config, "REMOTEAGENT_AGENT_NAME", "stock-analyst")
    monkeypatch.setattr(Config, "REMOTEAGENT_CANVAS_AGENT_NAME", None)

    with pytest.raises(ConfigurationError) as excinfo:
        Config.validate()

    assert excinfo.value.missing == ["REMOTEAGENT_BASE_URL", "REMOTEAGENT_TOKEN", "REMOTEAGENT_CANVAS_AGENT_NAME"]


def test_remote_agent_config_is_built_from_environment(configured, monkeypatch):
    monkeypatch.setattr(Config, "CREATE_RETRY_SECONDS", 5.0)

    agent_config = Config.remote_agent_config()

    assert agent_config.api_url == "https://agents.example.com/api/v0"
    assert agent_config.root_url == "https://agents.example.com"
    assert agent_config.create_retry_seconds == 5.0
    assert agent_config.poll_interval_seconds == Config.POLL_INTERVAL_SECONDS
    with pytest.raises(ValidationError):
        agent_config.token = "changed"


def test_google_api_key_checked_on_use(monkeypatch):
    monkeypatch.setattr(Config, "GOOGLE_API_KEY", None)

    with pytest.raises(ConfigurationError):
        Config.require_google_api_key()
