"""Centralized configuration for environment variables."""

import os

from anthropic import Anthropic
from pydantic import BaseModel, Field, ValidationError

ANTHROPIC_KEY_ENV = "ANTHROPIC_KEY"
DECISION_TIMEOUT_ENV = "BASEBALL_SIM_DECISION_TIMEOUT"
SPEED_ENV = "BASEBALL_SIM_SPEED"
LOG_LEVEL_ENV = "BASEBALL_SIM_LOG_LEVEL"
AGENT_MODEL_ENV = "BASEBALL_SIM_AGENT_MODEL"
CHECK_INVARIANTS_ENV = "BASEBALL_SIM_CHECK_INVARIANTS"

DEFAULT_AGENT_MODEL = "claude-sonnet-4-5-20250929"


class Settings(BaseModel):
    """Runtime knobs for a game session."""
    decision_timeout: float = Field(default=10.0, gt=0, description="Seconds before a decision auto-skips")
    speed: str = Field(default="normal", pattern="^(slow|normal|fast)$")
    log_level: str = "WARNING"
    agent_model: str = DEFAULT_AGENT_MODEL
    check_invariants: bool = True


def load_settings(environ: dict | None = None) -> Settings:
    """Build ``Settings`` from the environment.

    Raises ``ValueError`` naming the variable when a value does not validate.
    """
    env = os.environ if environ is None else environ
    raw = {}
    if env.get(DECISION_TIMEOUT_ENV):
        raw["decision_timeout"] = env[DECISION_TIMEOUT_ENV]
    if env.get(SPEED_ENV):
        raw["speed"] = env[SPEED_ENV].strip().lower()
    if env.get(LOG_LEVEL_ENV):
        raw["log_level"] = env[LOG_LEVEL_ENV].strip().upper()
    if env.get(AGENT_MODEL_ENV):
        raw["agent_model"] = env[AGENT_MODEL_ENV].strip()
    if env.get(CHECK_INVARIANTS_ENV):
        raw["check_invariants"] = env[CHECK_INVARIANTS_ENV].strip().lower() not in ("0", "false", "no", "off")
    try:
        return Settings(**raw)
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors())
        raise ValueError(f"Invalid configuration for: {fields}") from exc


def get_api_key() -> str:
    """Return the Anthropic API key, or empty string if not set."""
    return os.environ.get(ANTHROPIC_KEY_ENV, "")


def require_api_key(message: str = "") -> str:
    """Return the API key or exit with an error."""
    key = get_api_key()
    if not key:
        import sys

        msg = message or f"{ANTHROPIC_KEY_ENV} environment variable not set."
        print(f"Error: {msg}", file=sys.stderr)
        sys.exit(1)
    return key


def create_anthropic_client() -> Anthropic:
    """Create an Anthropic client using the configured API key."""
    return Anthropic(api_key=require_api_key())
