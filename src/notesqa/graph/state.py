"""
Graph state definition for the question-answering workflow.

The AnswerState TypedDict defines all data that flows through the LangGraph
workflow. Each node reads from it and returns the keys it fills in.
"""

from typing import Optional, TypedDict

import numpy as np
from numpy.typing import NDArray

from notesqa.retrieval.models import ContextBlock, RetrievalMatch, SourceCitation

__all__ = ["AnswerState", "ContextBlock", "SourceCitation", "create_initial_state"]


class AnswerState(TypedDict, total=False):
    """
    State schema for the answer workflow.

    Flow:
        1. Caller provides tenant_key and question
        2. embed_question fills question_embedding
        3. retrieve fills matches
        4. assemble fills context_blocks and citations
        5. generate fills prompt and answer
    """

    # ==========================================================================
    # Input
    # ==========================================================================
    tenant_key: str
    """Partition to answer from."""

    question: str
    """The user question."""

    match_count: Optional[int]
    """Chunks to retrieve; None uses the configured match limit."""

    # ==========================================================================
    # Retrieval
    # ==========================================================================
    question_embedding: NDArray[np.float32]
    """Embedding of the question."""

    matches: list[RetrievalMatch]
    """Retrieved chunks, most similar first."""

    # ==========================================================================
    # Assembly
    # ==========================================================================
    context_blocks: list[ContextBlock]
    """Titled passages for the prompt, in match order."""

    citations: list[SourceCitation]
    """One citation per cited note, in match order."""

    # ==========================================================================
    # Generation
    # ==========================================================================
    prompt: str
    """The prompt sent to the text generator."""

    answer: str
    """The generated answer text."""

    # ==========================================================================
    # Metadata
    # ==========================================================================
    processing_time_ms: float
    """Total processing time in milliseconds."""


def create_initial_state(
    tenant_key: str,
    question: str,
    match_count: Optional[int] = None,
) -> AnswerState:
    """
    Create an initial state for one question.

    Args:
        tenant_key: Partition to answer from
        question: The user's question
        match_count: Chunks to retrieve (optional)

    Returns:
        AnswerState with inputs populated and defaults set
    """
    return AnswerState(
        tenant_key=tenant_key,
        question=question,
        match_count=match_count,
        matches=[],
        context_blocks=[],
        citations=[],
    )
