"""LLM interaction module for estimate generation using Claude."""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from anthropic import Anthropic, APIError, RateLimitError

from .config import (
    ANTHROPIC_API_KEY,
    CLAUDE_MODEL,
    CLAUDE_TIMEOUT_SECONDS,
    ESTIMATE_MAX_TOKENS,
    ESTIMATE_TEMPERATURE,
    RATE_LIMIT_BACKOFF_SECONDS,
)

logger = logging.getLogger(__name__)


ESTIMATE_PROMPT = """You are a senior software project estimator and planner. Turn the Scope of Work (SOW) below into a detailed, professional estimation document that can be shared with clients or stakeholders.

Requirements:
- Write the document in Markdown, ready for presentation.
- Include these sections: Work Breakdown Structure (WBS), Cost Estimate, Resources Required, Timeline.
- WBS: organise by phase (Planning, Design, Development, Testing, Deployment, Maintenance). List the features, modules and tasks of each phase as sub-items with estimated hours per task.
- Cost Estimate: effort-based estimates per task and phase with hours, hourly rates and total cost per role (frontend developer, backend developer, QA, DevOps, UI/UX, PM). Put third-party tools, licences and cloud costs on separate lines.
- Resources Required: roles, head count per role, duration of involvement (weeks or months) and any external services or APIs.
- Timeline: task durations, dependencies, a Gantt-style table, total project duration and the critical path.
- Use clear headings, tables and bullet lists. Avoid placeholders. Keep estimates realistic and state assumptions explicitly.
- Return only the estimation document, with no commentary around it.

Scope of Work:
{scope_text}

User feedback (if any):
{feedback}
"""


class EstimationError(RuntimeError):
    """Raised when the language model could not produce an estimate."""


def build_prompt(scope_text: str, feedback: Optional[str] = None) -> str:
    return ESTIMATE_PROMPT.format(
        scope_text=scope_text,
        feedback=feedback if feedback else "None",
    )


class ClaudeEstimator:
    """Handles interaction with Claude API for estimate generation."""

    def __init__(self, api_key: Optional[str] = None, sleeper: Callable[[float], None] = time.sleep):
        """Initialize Claude client."""
        self.api_key = api_key or ANTHROPIC_API_KEY
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY not found. Please set it in .env file")

        self.client = Anthropic(api_key=self.api_key, timeout=CLAUDE_TIMEOUT_SECONDS)
        self.model = CLAUDE_MODEL
        self._sleep = sleeper

    def generate_estimate(self, scope_text: str, feedback: Optional[str] = None) -> str:
        """
        Produce a markdown estimate for the scope, applying feedback when given.

        Args:
            scope_text: Scope of work, or a previous estimate being refined
            feedback: Optional reviewer feedback

        Returns:
            Estimate markdown with surrounding whitespace removed
        """
        prompt = build_prompt(scope_text, feedback)
        logger.info("Calling Claude for estimate (model=%s, feedback=%s)", self.model, bool(feedback))

        attempt = 0
        while True:
            try:
                response = self.client.messages.create(
                    model=self.model,
                    max_tokens=ESTIMATE_MAX_TOKENS,
                    temperature=ESTIMATE_TEMPERATURE,
                    messages=[{"role": "user", "content": prompt}],
                )
                break
            except RateLimitError as exc:
                if attempt >= len(RATE_LIMIT_BACKOFF_SECONDS):
                    logger.error("Estimate generation failed after %d rate-limit retries", attempt)
                    raise EstimationError("Estimation service is rate limited, try again later") from exc
                wait = RATE_LIMIT_BACKOFF_SECONDS[attempt]
                logger.warning("Rate limit on estimate generation. Retrying in %ss (attempt %d)", wait, attempt + 1)
                self._sleep(wait)
                attempt += 1
            except APIError as exc:
                logger.exception("Claude API call failed: %s", exc)
                raise EstimationError(f"Claude API call failed: {exc}") from exc

        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.warning("Estimate hit max_tokens limit (%d); output may be incomplete", ESTIMATE_MAX_TOKENS)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise EstimationError("Claude returned an empty estimate")
        return text.strip()
