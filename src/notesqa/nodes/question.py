"""
Question nodes: embed the question and retrieve matching chunks.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from notesqa.retrieval.embeddings import EmbedderProtocol
from notesqa.retrieval.retriever import Retriever

if TYPE_CHECKING:
    from notesqa.graph.state import AnswerState


def make_embed_question_node(
    embedder: EmbedderProtocol,
) -> Callable[["AnswerState"], Awaitable[dict]]:
    """Create the node that embeds ``question``."""

    async def embed_question_node(state: "AnswerState") -> dict:
        return {"question_embedding": await embedder.aembed(state["question"])}

    return embed_question_node


def make_retrieve_node(retriever: Retriever) -> Callable[["AnswerState"], Awaitable[dict]]:
    """Create the node that fills ``matches`` for the tenant."""

    async def retrieve_node(state: "AnswerState") -> dict:
        matches = retriever.retrieve(
            state["tenant_key"],
            state["question_embedding"],
            k=state.get("match_count"),
        )
        return {"matches": matches}

    return retrieve_node
