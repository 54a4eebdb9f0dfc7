"""
Context assembler: turns ranked matches into prompt context and citations.

Titles are resolved with one batched lookup over the distinct note ids.
Citations are de-duplicated by note, keeping the highest-scoring chunk of
each note, and capped at ``citation_limit`` notes. Context blocks are kept
only for the cited notes, in match order.
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from notesqa.config import settings
from notesqa.retrieval.models import ContextBlock, RetrievalMatch, SourceCitation

if TYPE_CHECKING:
    from notesqa.graph.state import AnswerState

UNTITLED = "Untitled"

TitleLookup = Callable[[set[str]], Mapping[str, str]]


@dataclass
class AssembledContext:
    """Prompt context and citations for one question."""

    context_blocks: list[ContextBlock] = field(default_factory=list)
    citations: list[SourceCitation] = field(default_factory=list)


def assemble(
    matches: Sequence[RetrievalMatch],
    title_lookup: TitleLookup,
    *,
    citation_limit: Optional[int] = None,
    snippet_length: Optional[int] = None,
) -> AssembledContext:
    """
    Build context blocks and citations from ranked matches.

    Args:
        matches: Retrieved chunks, most similar first
        title_lookup: Maps a set of note ids to titles; called at most once
        citation_limit: Maximum distinct notes (default from settings)
        snippet_length: Characters per snippet (default from settings)

    Returns:
        AssembledContext with blocks in match order and one citation per note
    """
    citation_limit = citation_limit or settings.citation_limit
    snippet_length = snippet_length or settings.snippet_length

    if not matches:
        return AssembledContext()

    titles = title_lookup({m.document_id for m in matches})

    citations: list[SourceCitation] = []
    cited: set[str] = set()
    for match in matches:
        if match.document_id in cited or len(citations) >= citation_limit:
            continue
        cited.add(match.document_id)
        citations.append(
            SourceCitation(
                document_id=match.document_id,
                title=titles.get(match.document_id) or UNTITLED,
                snippet=(match.content or "")[:snippet_length],
            )
        )

    context_blocks = [
        ContextBlock(title=titles.get(m.document_id) or UNTITLED, content=m.content)
        for m in matches
        if m.document_id in cited
    ]

    return AssembledContext(context_blocks=context_blocks, citations=citations)


def make_assemble_node(
    title_lookup: Callable[[Iterable[str]], Mapping[str, str]],
    *,
    citation_limit: Optional[int] = None,
    snippet_length: Optional[int] = None,
) -> Callable[["AnswerState"], Awaitable[dict]]:
    """Create the workflow node that assembles context from ``matches``."""

    async def assemble_node(state: "AnswerState") -> dict:
        assembled = assemble(
            state.get("matches", []),
            title_lookup,
            citation_limit=citation_limit,
            snippet_length=snippet_length,
        )
        return {
            "context_blocks": assembled.context_blocks,
            "citations": assembled.citations,
        }

    return assemble_node
