# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "anthropic>=0.78.0",
#     "pydantic>=2.0",
# ]
# ///
"""Claude as the manager of one team.

Builds a short situation report for a pending decision, asks Claude to pick
one of the eligible options, and turns the reply into an action. Any failure
(API error, unparseable reply, ineligible option) falls back to skipping the
decision, the same as letting the countdown run out.
"""

from __future__ import annotations

import json
import logging
import random
import re
import time

from anthropic import Anthropic
from pydantic import BaseModel, Field, ValidationError

from config import DEFAULT_AGENT_MODEL
from decisions import action_for_option
from models import GameState, HALF_NAMES, PendingDecision
from strategy import Strategy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Claude API rate limit constants
# ---------------------------------------------------------------------------

CLAUDE_MAX_RETRIES = 5
CLAUDE_BACKOFF_BASE = 2.0  # seconds; actual delay = base * 2^attempt + jitter

SYSTEM_PROMPT = """You are the manager of a baseball team in a simulated game.
At each decision point you receive the game situation and a list of options.
Reply with a single JSON object and nothing else:
{"option": "<one of the listed options>", "reasoning": "<one or two sentences>"}
Pick "skip" when no action is worth taking."""

_OPTION_HELP = {
    "steal": "send the runner",
    "bunt": "sacrifice bunt on the next pitch",
    "ibb": "intentionally walk the batter",
    "take": "take the next pitch",
    "swing": "swing at the next pitch",
    "protect": "shorten up and protect the plate",
    "normal": "normal swing",
    "shift_on": "deploy the defensive shift",
    "shift_off": "play straight up",
    "skip": "do nothing",
}


class AgentChoice(BaseModel):
    """Structured reply from the agent."""
    option: str = Field(description="One of the offered options")
    reasoning: str = Field(default="", description="Short justification")


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def build_decision_prompt(state: GameState, decision: PendingDecision, managed_team: int) -> str:
    away, home = state.teams
    runners = [name for name, on in zip(("1st", "2nd", "3rd"), state.base_layout) if on]
    side = "batting" if state.at_bat == managed_team else "fielding"
    lines = [
        f"You manage the {state.teams[managed_team]} ({side}).",
        f"{HALF_NAMES[state.at_bat].capitalize()} of inning {state.inning}.",
        f"Score: {away} {state.score[0]}, {home} {state.score[1]}.",
        f"Outs: {state.outs}. Count: {state.balls}-{state.strikes}.",
        f"Runners: {', '.join(runners) if runners else 'none'}.",
        f"Batter: {state.current_batter_name()}.",
        f"Decision: {decision.kind.value}.",
    ]
    if decision.success_pct is not None:
        lines.append(f"Estimated steal success: {decision.success_pct}%.")
    lines.append("Options:")
    for option in decision.options:
        help_text = _OPTION_HELP.get(option, f"pinch hitter with a {option} approach")
        lines.append(f"- {option}: {help_text}")
    return "\n".join(lines)


def parse_agent_reply(text: str) -> AgentChoice | None:
    """Pull the JSON object out of a reply; ``None`` if there is none."""
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match is None:
        return None
    try:
        return AgentChoice.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Unparseable agent reply: %s", e)
        return None


# ---------------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------------

def _claude_backoff_sleep(attempt: int, retry_after: float | None = None) -> None:
    """Sleep with exponential backoff and jitter for Claude API retries.

    Args:
        attempt: Zero-based retry attempt number.
        retry_after: Optional server-requested delay (from Retry-After
            or ``x-retry-after`` headers).
    """
    base_delay = CLAUDE_BACKOFF_BASE * (2 ** attempt)
    delay = base_delay + random.random() * base_delay
    if retry_after is not None and retry_after > delay:
        delay = retry_after
    time.sleep(delay)


def _extract_retry_after(exc: Exception) -> float | None:
    """Seconds the server asked us to wait, if the error carries response headers."""
    headers = getattr(getattr(exc, "response", None), "headers", None)
    if headers is None:
        return None
    for key in ("retry-after", "x-retry-after"):
        val = headers.get(key)
        if val is not None:
            try:
                return max(0.0, float(val))
            except (TypeError, ValueError):
                pass
    return None


def _is_rate_limit_error(exc: Exception) -> bool:
    if getattr(exc, "status_code", None) == 429:
        return True
    # Some SDK versions use 'status' instead of 'status_code'
    if getattr(exc, "status", None) == 429:
        return True
    response = getattr(exc, "response", None)
    return response is not None and getattr(response, "status_code", None) == 429


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class ClaudeManager:
    def __init__(
        self,
        client: Anthropic,
        model: str = DEFAULT_AGENT_MODEL,
        max_retries: int = CLAUDE_MAX_RETRIES,
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.client = client
        self.model = model
        self.max_retries = max_retries
        self.rate_limit_retries = 0
        self.last_choice: AgentChoice | None = None

    def _call(self, prompt: str) -> str:
        """One completion, retrying 429s. Other errors propagate."""
        for attempt in range(self.max_retries):
            try:
                response = self.client.messages.create(
                    model=self.model,
                    max_tokens=300,
                    system=SYSTEM_PROMPT,
                    messages=[{"role": "user", "content": prompt}],
                )
                break
            except Exception as exc:
                if _is_rate_limit_error(exc) and attempt < self.max_retries - 1:
                    self.rate_limit_retries += 1
                    retry_after = _extract_retry_after(exc)
                    logger.warning(
                        "Claude API rate limit (429) on attempt %d/%d (Retry-After: %s)",
                        attempt + 1, self.max_retries,
                        retry_after if retry_after is not None else "not set",
                    )
                    _claude_backoff_sleep(attempt, retry_after=retry_after)
                    continue
                raise
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    def choose(self, state: GameState, decision: PendingDecision, managed_team: int, strategy: Strategy):
        """Return the action Claude picks, or ``None`` to skip."""
        prompt = build_decision_prompt(state, decision, managed_team)
        try:
            text = self._call(prompt)
        except Exception as e:
            logger.error("Agent call failed on %s decision: %s", decision.kind.value, e)
            return None

        choice = parse_agent_reply(text)
        self.last_choice = choice
        if choice is None:
            return None
        try:
            action = action_for_option(decision, choice.option, strategy)
        except ValueError as e:
            logger.warning("Agent picked an ineligible option: %s", e)
            return None
        logger.info("Agent chose %s: %s", choice.option, choice.reasoning)
        return action

    def as_decision_source(self, managed_team: int, strategy: Strategy = Strategy.BALANCED):
        """Adapter for ``GameSession(decision_source=...)``."""
        def source(state: GameState, decision: PendingDecision):
            return self.choose(state, decision, managed_team, strategy)
        return source
