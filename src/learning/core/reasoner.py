"""Reasoner agent.

Turns retrieved course material into an answer for a learner:
- draft: first answer, grounded in the numbered context
- review: JSON verdict on the answer (approved, issues, follow-up query)
- refine: rewrite the answer to fix the reviewer's issues

Prompts live in prompts/reasoner/*.md.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from learning.config.personas import Persona
from learning.core.retriever import RetrievedChunk
from learning.db.learners_repository import LearnerRecord
from learning.llm.client import LLMClient, LLMResponseError
from learning.prompts.registry import get_prompt
from learning.utils.text_utils import strip_think

logger = structlog.get_logger(__name__)

NO_CONTEXT_TEXT = "(No course material matched this question.)"

DRAFT_TEMPERATURE = 0.4
REVIEW_TEMPERATURE = 0.0


@dataclass
class Review:
    """Reviewer verdict on an answer."""

    approved: bool
    issues: list[str] = field(default_factory=list)
    follow_up_query: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Review:
        """Build a Review from parsed LLM JSON.

        ``approved`` must be a real boolean (or "true"/"false"); anything
        else is rejected so an unparseable verdict never counts as approval.

        Raises:
            LLMResponseError: If ``approved`` is missing or not a boolean
        """
        approved = data.get("approved")
        if isinstance(approved, str) and approved.strip().lower() in ("true", "false"):
            approved = approved.strip().lower() == "true"
        if not isinstance(approved, bool):
            raise LLMResponseError(f"Review without boolean 'approved': {data!r}"[:200])

        raw_issues = data.get("issues") or []
        if isinstance(raw_issues, str):
            raw_issues = [raw_issues]
        issues = [str(i).strip() for i in raw_issues if str(i).strip()]

        follow_up = data.get("follow_up_query")
        if not isinstance(follow_up, str) or not follow_up.strip() or follow_up.strip().lower() == "null":
            follow_up = None
        else:
            follow_up = follow_up.strip()

        return cls(approved=approved, issues=issues, follow_up_query=follow_up)


def format_context(context: list[RetrievedChunk]) -> str:
    """Render chunks as a numbered list for prompts."""
    if not context:
        return NO_CONTEXT_TEXT
    blocks = []
    for i, item in enumerate(context, start=1):
        blocks.append(f"[{i}] ({item.chunk.topic_title})\n{item.chunk.text}")
    return "\n\n".join(blocks)


class Reasoner:
    """Draft / review / refine agent."""

    def __init__(self, client: LLMClient, max_rounds: int = 2, json_retries: int = 1):
        self.client = client
        self.max_rounds = max_rounds
        self.json_retries = json_retries

    def _system_prompt(self, learner: LearnerRecord, persona: Persona) -> str:
        return get_prompt(
            "reasoner/draft_system",
            persona_name=persona.name,
            persona_title=persona.short_title,
            persona_background=persona.background.strip(),
            style_rules=persona.style_rules.strip(),
            learner_name=learner.name,
            learner_level=learner.level,
            learner_goals=learner.goals or "not stated",
        )

    def draft(
        self,
        question: str,
        context: list[RetrievedChunk],
        learner: LearnerRecord,
        persona: Persona,
    ) -> str:
        """Write the first answer to a question."""
        user_prompt = get_prompt(
            "reasoner/draft_user",
            context=format_context(context),
            question=question,
        )
        answer = strip_think(
            self.client.simple_chat(
                self._system_prompt(learner, persona),
                user_prompt,
                temperature=DRAFT_TEMPERATURE,
            )
        )
        logger.debug("reasoner.drafted", chars=len(answer), context=len(context))
        return answer

    def review(self, question: str, answer: str, context: list[RetrievedChunk]) -> Review:
        """Ask the reviewer for a verdict on an answer.

        Raises:
            LLMResponseError: If no usable JSON verdict comes back
        """
        data = self.client.simple_json(
            get_prompt("reasoner/review_system"),
            get_prompt(
                "reasoner/review_user",
                context=format_context(context),
                question=question,
                answer=answer,
            ),
            temperature=REVIEW_TEMPERATURE,
            max_retries=self.json_retries,
        )
        review = Review.from_json(data)
        logger.debug(
            "reasoner.reviewed",
            approved=review.approved,
            issues=len(review.issues),
            follow_up=review.follow_up_query is not None,
        )
        return review

    def refine(
        self,
        question: str,
        answer: str,
        issues: list[str],
        context: list[RetrievedChunk],
        learner: LearnerRecord,
        persona: Persona,
    ) -> str:
        """Rewrite an answer so the listed issues are fixed."""
        issues_text = "\n".join(f"- {issue}" for issue in issues) or "- The reviewer did not approve the answer."
        user_prompt = get_prompt(
            "reasoner/refine_user",
            context=format_context(context),
            question=question,
            answer=answer,
            issues=issues_text,
        )
        refined = strip_think(
            self.client.simple_chat(
                self._system_prompt(learner, persona),
                user_prompt,
                temperature=DRAFT_TEMPERATURE,
            )
        )
        logger.debug("reasoner.refined", chars=len(refined), issues=len(issues))
        return refined
