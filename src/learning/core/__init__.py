"""Core business logic.

Modules:
- content_importer: Document -> topics, chunks and embeddings
- module_store: On-disk module artifacts
- retriever: Retriever agent (cosine similarity over chunk embeddings)
- reasoner: Reasoner agent (draft / review / refine)
- pipeline: Agentic RAG tutor pipeline
- learners: Learner profiles
- progress: Per-topic progress tracking
- feedback: Learner ratings of answers
"""

__all__ = [
    "content_importer",
    "module_store",
    "retriever",
    "reasoner",
    "pipeline",
    "learners",
    "progress",
    "feedback",
]
