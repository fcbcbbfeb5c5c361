import os
from typing import List
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from .env file
load_dotenv()


class ConfigurationError(RuntimeError):
    """Required configuration is missing. Fatal, never retried."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")


class InvalidRequest(ValueError):
    """Caller input is missing or malformed. Surfaces as HTTP 400."""


class RemoteAgentConfig(BaseModel):
    """Immutable settings handed to RemoteAgentClient at construction."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    token: str
    default_agent_name: str
    canvas_agent_name: str
    session_template_agent: str = "stock-performance-overview"
    create_retry_seconds: float = 10.0
    poll_interval_seconds: float = 2.0
    max_wait_seconds: float = 15 * 60
    request_timeout_seconds: float = 30.0
    blocking_timeout_seconds: float = 15 * 60

    @property
    def root_url(self) -> str:
        """Base URL without a trailing /api/v0 (content files live under the root)."""
        url = self.base_url.rstrip("/")
        if url.endswith("/api/v0"):
            url = url[: -len("/api/v0")]
        return url

    @property
    def api_url(self) -> str:
        return f"{self.root_url}/api/v0"


class Config:
    """Centralized configuration management"""

    # Environment
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Remote agent platform
    REMOTEAGENT_BASE_URL = os.getenv("REMOTEAGENT_BASE_URL")
    REMOTEAGENT_TOKEN = os.getenv("REMOTEAGENT_TOKEN")
    REMOTEAGENT_AGENT_NAME = os.getenv("REMOTEAGENT_AGENT_NAME")
    REMOTEAGENT_CANVAS_AGENT_NAME = os.getenv("REMOTEAGENT_CANVAS_AGENT_NAME")
    REMOTEAGENT_SESSION_TEMPLATE = os.getenv("REMOTEAGENT_SESSION_TEMPLATE", "stock-performance-overview")

    # Remote agent timing
    CREATE_RETRY_SECONDS = float(os.getenv("REMOTEAGENT_CREATE_RETRY_SECONDS", "10"))
    POLL_INTERVAL_SECONDS = float(os.getenv("REMOTEAGENT_POLL_INTERVAL_SECONDS", "2"))
    MAX_WAIT_SECONDS = float(os.getenv("REMOTEAGENT_MAX_WAIT_SECONDS", str(15 * 60)))
    REQUEST_TIMEOUT_SECONDS = float(os.getenv("REMOTEAGENT_REQUEST_TIMEOUT_SECONDS", "30"))
    BLOCKING_TIMEOUT_SECONDS = float(os.getenv("REMOTEAGENT_BLOCKING_TIMEOUT_SECONDS", str(15 * 60)))

    # LLM Configuration (report discussion)
    GEMINI_FLASH_LITE = "gemini-2.5-flash-lite"
    GEMINI_FLASH = "gemini-2.5-flash"

    # LLM Parameters
    TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))
    ASYNC_TIMEOUT_SECONDS = int(os.getenv("ASYNC_TIMEOUT_SECONDS", "30"))
    ENABLE_LLM_CACHE = os.getenv("ENABLE_LLM_CACHE", "true").lower() == "true"

    # API Keys
    GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")

    # Market data
    HTTP_USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )

    REMOTE_AGENT_REQUIRED = [
        "REMOTEAGENT_BASE_URL",
        "REMOTEAGENT_TOKEN",
        "REMOTEAGENT_AGENT_NAME",
        "REMOTEAGENT_CANVAS_AGENT_NAME",
    ]

    # Validation
    @classmethod
    def validate(cls):
        """Validate remote agent configuration"""
        missing = [var for var in cls.REMOTE_AGENT_REQUIRED if not getattr(cls, var)]

        if missing:
            raise ConfigurationError(missing)

        return True

    @classmethod
    def is_remote_agent_configured(cls) -> bool:
        return bool(cls.REMOTEAGENT_BASE_URL and cls.REMOTEAGENT_TOKEN)

    @classmethod
    def remote_agent_config(cls) -> RemoteAgentConfig:
        """Validate on first use and build the explicit client configuration."""
        cls.validate()
        return RemoteAgentConfig(
            base_url=cls.REMOTEAGENT_BASE_URL,
            token=cls.REMOTEAGENT_TOKEN,
            default_agent_name=cls.REMOTEAGENT_AGENT_NAME,
            canvas_agent_name=cls.REMOTEAGENT_CANVAS_AGENT_NAME,
            session_template_agent=cls.REMOTEAGENT_SESSION_TEMPLATE,
            create_retry_seconds=cls.CREATE_RETRY_SECONDS,
            poll_interval_seconds=cls.POLL_INTERVAL_SECONDS,
            max_wait_seconds=cls.MAX_WAIT_SECONDS,
            request_timeout_seconds=cls.REQUEST_TIMEOUT_SECONDS,
            blocking_timeout_seconds=cls.BLOCKING_TIMEOUT_SECONDS,
        )

    @classmethod
    def require_google_api_key(cls) -> str:
        if not cls.GOOGLE_API_KEY:
            raise ConfigurationError(["GOOGLE_API_KEY"])
        return cls.GOOGLE_API_KEY


# Singleton instance
config = Config()
