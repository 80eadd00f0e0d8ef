# services/prompts.py
"""Grounded-answer prompt assembly."""
from textwrap import dedent
from typing import List

from core.domain import RetrievedPassage

NO_INFORMATION_ANSWER = "I couldn't find any relevant information to answer your question."
EMPTY_GENERATION_FALLBACK = "Sorry, I couldn't generate an answer."


def build_system_prompt() -> str:
    return dedent(
        """\
        You are a helpful assistant that answers questions using only the provided context.
        Rules:
        - Answer strictly from the context. Do not use outside knowledge.
        - After each fact you use, cite its source URL in square brackets, e.g. [https://example.com/page].
        - If the context does not contain enough information to answer, say so explicitly.
        """
    )


def format_context(passages: List[RetrievedPassage]) -> str:
    """Passages best first, each tagged with source URL and similarity score."""
    ranked = sorted(passages, key=lambda rp: (-rp.score, rp.passage.id))
    blocks = [
        f"[{position}] Source: {rp.passage.source_url} (similarity: {rp.score:.3f})\n"
        f"Content: {rp.passage.text}"
        for position, rp in enumerate(ranked, start=1)
    ]
    return "\n\n".join(blocks)


def build_user_prompt(question: str, passages: List[RetrievedPassage]) -> str:
    return (
        f"Context:\n{format_context(passages)}\n\n"
        f"Question: {question}\n\n"
        "Answer the question based only on the context provided above, citing the source URL for each fact."
    )
