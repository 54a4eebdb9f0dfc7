"""
LangGraph workflow definition for answering questions over a tenant's notes.

Graph Structure:
    START -> embed_question -> retrieve -> assemble -> generate -> END

Every edge is unconditional. A tenant without notes still reaches
``generate`` with an empty context, so the generator's own
insufficient-information instruction applies. Any node failure aborts
the whole question: no answer and no citations are returned.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from langgraph.graph import END, START, StateGraph

from notesqa.config import settings
from notesqa.graph.state import AnswerState, SourceCitation, create_initial_state
from notesqa.llm.factory import LLMProtocol
from notesqa.nodes.assembler import make_assemble_node
from notesqa.nodes.generator import make_generate_node
from notesqa.nodes.question import make_embed_question_node, make_retrieve_node
from notesqa.retrieval.embeddings import EmbedderProtocol
from notesqa.retrieval.retriever import Retriever
from notesqa.retrieval.store import NoteStore

logger = logging.getLogger(__name__)


class AnswerError(Exception):
    """Raised when a question could not be answered."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class AnswerResult:
    """An answer together with the notes it was grounded on."""

    answer: str
    sources: list[SourceCitation] = field(default_factory=list)
    processing_time_ms: float = 0.0


def build_graph(
    embedder: EmbedderProtocol,
    store: NoteStore,
    llm: LLMProtocol,
    *,
    match_limit: Optional[int] = None,
    citation_limit: Optional[int] = None,
    snippet_length: Optional[int] = None,
    max_context_chars: Optional[int] = None,
):
    """
    Build and compile the answer workflow graph.

    Args:
        embedder: Embeds the question
        store: Provides similarity search and title lookup
        llm: Writes the answer
        match_limit: Default chunks per question (default from settings)
        citation_limit: Maximum cited notes (default from settings)
        snippet_length: Characters per citation snippet (default from settings)
        max_context_chars: Bound on the prompt context (default from settings)

    Returns:
        Compiled StateGraph ready for ainvoke()
    """
    workflow = StateGraph(AnswerState)

    workflow.add_node("embed_question", make_embed_question_node(embedder))
    workflow.add_node(
        "retrieve",
        make_retrieve_node(Retriever(store, default_k=match_limit)),
    )
    workflow.add_node(
        "assemble",
        make_assemble_node(
            store.get_titles,
            citation_limit=citation_limit,
            snippet_length=snippet_length,
        ),
    )
    workflow.add_node(
        "generate",
        make_generate_node(llm, max_context_chars=max_context_chars),
    )

    workflow.add_edge(START, "embed_question")
    workflow.add_edge("embed_question", "retrieve")
    workflow.add_edge("retrieve", "assemble")
    workflow.add_edge("assemble", "generate")
    workflow.add_edge("generate", END)

    return workflow.compile()


class AnswerOrchestrator:
    """
    Top-level entry point for answering one question.

    Example:
        >>> orchestrator = AnswerOrchestrator(embedder, store, llm)
        >>> result = await orchestrator.answer(tenant_key, "When is the dentist?")
        >>> result.answer, [s.title for s in result.sources]
    """

    def __init__(
        self,
        embedder: EmbedderProtocol,
        store: NoteStore,
        llm: LLMProtocol,
        *,
        match_limit: Optional[int] = None,
        citation_limit: Optional[int] = None,
        snippet_length: Optional[int] = None,
        max_context_chars: Optional[int] = None,
    ) -> None:
        self.match_limit = match_limit or settings.match_limit
        self.citation_limit = citation_limit or settings.citation_limit
        self._graph = build_graph(
            embedder,
            store,
            llm,
            match_limit=self.match_limit,
            citation_limit=self.citation_limit,
            snippet_length=snippet_length,
            max_context_chars=max_context_chars,
        )

    async def run(
        self,
        tenant_key: str,
        question: str,
        match_count: Optional[int] = None,
    ) -> AnswerState:
        """
        Execute the workflow and return the final state.

        Raises:
            ValueError: If tenant_key or question is empty, or match_count < 1
            AnswerError: If any step fails
        """
        if not tenant_key:
            raise ValueError("tenant_key is required")
        if not question or not question.strip():
            raise ValueError("question must not be empty")
        if match_count is not None and match_count < 1:
            raise ValueError(f"match_count must be at least 1, got {match_count}")

        state = create_initial_state(tenant_key, question, match_count)

        start_time = time.perf_counter()
        try:
            final_state = await self._graph.ainvoke(state)
        except Exception as e:
            reason = getattr(e, "reason", None) or str(e) or type(e).__name__
            logger.error("Answering failed for tenant %s: %s", tenant_key, reason)
            raise AnswerError(reason) from e
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        final_state["processing_time_ms"] = elapsed_ms
        logger.info(
            "Answered question for tenant %s in %.0fms (%d matches, %d sources)",
            tenant_key,
            elapsed_ms,
            len(final_state.get("matches", [])),
            len(final_state.get("citations", [])),
        )
        return final_state

    async def answer(
        self,
        tenant_key: str,
        question: str,
        match_count: Optional[int] = None,
    ) -> AnswerResult:
        """
        Answer a question from a tenant's notes.

        Args:
            tenant_key: Partition to answer from
            question: The user's question
            match_count: Chunks to retrieve (default: the match limit)

        Returns:
            AnswerResult with the generator's text and the cited notes

        Raises:
            ValueError: If the input is invalid
            AnswerError: If embedding, retrieval or generation fails
        """
        final_state = await self.run(tenant_key, question, match_count)
        return AnswerResult(
            answer=final_state.get("answer", ""),
            sources=list(final_state.get("citations", [])),
            processing_time_ms=final_state.get("processing_time_ms", 0.0),
        )
