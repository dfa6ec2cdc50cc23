"""Agentic RAG tutor pipeline.

Orchestrates one question end to end:

1. Retriever agent fetches the module chunks closest to the question.
2. Reasoner agent drafts an answer from them.
3. Up to ``max_rounds`` times: the reasoner reviews its answer; if not
   approved it optionally retrieves more material (bounded by
   ``max_retrievals``) and refines the answer.
4. Each topic used as a source gets one progress interaction.

The loop always ends: at most max_rounds reviews and refinements, at
most max_retrievals retrieval calls.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from learning.config.app_config import AppConfig, load_app_config
from learning.config.personas import resolve_persona
from learning.core.learners import get_learner
from learning.core.progress import record_interaction
from learning.core.reasoner import Reasoner, Review
from learning.core.retriever import LearningModuleNotFoundError, RetrievedChunk, Retriever
from learning.db.modules_repository import get_module_by_id
from learning.llm.client import LLMClient, LLMConfig, LLMResponseError

logger = structlog.get_logger(__name__)


@dataclass
class TutorAnswer:
    """Final answer with the trace of how it was produced."""

    answer: str
    approved: bool
    rounds: int
    retrievals: int
    sources: list[dict[str, Any]] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    latency_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "approved": self.approved,
            "rounds": self.rounds,
            "retrievals": self.retrievals,
            "sources": self.sources,
            "issues": self.issues,
            "latency_ms": self.latency_ms,
        }


def merge_context(
    current: list[RetrievedChunk],
    extra: list[RetrievedChunk],
    limit: int,
) -> list[RetrievedChunk]:
    """Union by chunk_id keeping the higher score, best first, at most ``limit``.

    Equal scores keep first-seen order.
    """
    best: dict[str, RetrievedChunk] = {}
    for item in [*current, *extra]:
        known = best.get(item.chunk.chunk_id)
        if known is None or item.score > known.score:
            best[item.chunk.chunk_id] = item
    merged = sorted(best.values(), key=lambda item: -item.score)
    return merged[:limit]


def source_topics(context: list[RetrievedChunk]) -> list[str]:
    """Distinct topic IDs in order of first appearance."""
    seen: list[str] = []
    for item in context:
        if item.chunk.topic_id not in seen:
            seen.append(item.chunk.topic_id)
    return seen


class TutorPipeline:
    """Retrieve, draft, review and refine answers for learners."""

    def __init__(
        self,
        retriever: Retriever,
        reasoner: Reasoner,
        max_retrievals: int = 2,
        record_progress: bool = True,
    ):
        self.retriever = retriever
        self.reasoner = reasoner
        self.max_retrievals = max(1, max_retrievals)
        self.record_progress = record_progress

    def ask(self, learner_id: str, module_id: str, question: str) -> TutorAnswer:
        """Answer a learner's question about a module.

        Raises:
            LearnerNotFoundError: If the learner does not exist
            LearningModuleNotFoundError: If the module does not exist
            RetrievalError: If the question is empty
            ModuleStorageError: If the stored module is corrupt
            LLMError: If a draft, refinement or embedding call fails
        """
        start_time = time.time()

        learner = get_learner(learner_id)
        if get_module_by_id(module_id) is None:
            raise LearningModuleNotFoundError(module_id)
        persona = resolve_persona(learner.persona_id)

        logger.info("pipeline.start", learner_id=learner_id, module_id=module_id)

        context = self.retriever.retrieve(module_id, question)
        retrievals = 1
        context_limit = 2 * self.retriever.top_k

        answer = self.reasoner.draft(question, context, learner, persona)
        rounds = 0
        approved = False
        last_review: Review | None = None

        while rounds < self.reasoner.max_rounds:
            try:
                last_review = self.reasoner.review(question, answer, context)
            except LLMResponseError as e:
                logger.warning("pipeline.review_unparseable", error=str(e), rounds=rounds)
                break

            if last_review.approved:
                approved = True
                break

            if last_review.follow_up_query and retrievals < self.max_retrievals:
                extra = self.retriever.retrieve(module_id, last_review.follow_up_query)
                retrievals += 1
                context = merge_context(context, extra, context_limit)
                logger.debug(
                    "pipeline.context_extended",
                    query=last_review.follow_up_query,
                    added=len(extra),
                    context=len(context),
                )

            answer = self.reasoner.refine(
                question, answer, last_review.issues, context, learner, persona
            )
            rounds += 1

        if self.record_progress:
            for topic_id in source_topics(context):
                record_interaction(learner_id, module_id, topic_id)

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "pipeline.answered",
            learner_id=learner_id,
            module_id=module_id,
            approved=approved,
            rounds=rounds,
            retrievals=retrievals,
            sources=len(context),
            latency_ms=latency_ms,
        )

        return TutorAnswer(
            answer=answer,
            approved=approved,
            rounds=rounds,
            retrievals=retrievals,
            sources=[item.to_source() for item in context],
            issues=last_review.issues if last_review else [],
            latency_ms=latency_ms,
        )


def build_pipeline(config: AppConfig | None = None, client: LLMClient | None = None) -> TutorPipeline:
    """Wire retriever and reasoner from the application config."""
    config = config or load_app_config()
    if client is None:
        client = LLMClient(LLMConfig.from_app_config())

    retriever = Retriever(
        data_dir=config.data_dir,
        client=client,
        top_k=config.retrieval.top_k,
        min_score=config.retrieval.min_score,
    )
    reasoner = Reasoner(
        client=client,
        max_rounds=config.pipeline.max_refinement_rounds,
        json_retries=config.tutor.max_retries,
    )
    return TutorPipeline(
        retriever=retriever,
        reasoner=reasoner,
        max_retrievals=config.pipeline.max_retrievals,
    )
