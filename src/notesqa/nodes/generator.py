"""
Generator node: asks the text generator to answer from the assembled context.

The prompt restricts the answer to the supplied notes, asks for an explicit
statement when they are insufficient and for inline citations by title.
The generator's text is returned verbatim.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Optional

from notesqa.config import settings
from notesqa.llm.chat_endpoint import DEFAULT_SYSTEM_PROMPT
from notesqa.llm.factory import LLMProtocol
from notesqa.retrieval.models import ContextBlock

if TYPE_CHECKING:
    from notesqa.graph.state import AnswerState


GENERATOR_PROMPT = """You are an assistant answering questions strictly using the provided notes context.

Question: {question}

Context:
{context}

Instructions:
- Answer only from the context above; do not use outside knowledge.
- If the answer is not in the context, say you don't have enough information.
- Keep answers concise.
- Cite sources inline like (See: Title)."""


def format_context(
    blocks: Sequence[ContextBlock],
    max_chars: Optional[int] = None,
) -> str:
    """
    Render context blocks as ``[n] Title: ...`` sections.

    Blocks are added in order until ``max_chars`` is reached; a block that
    would cross the limit is cut short and later blocks are dropped.
    """
    max_chars = max_chars or settings.max_context_chars

    parts: list[str] = []
    used = 0
    for n, block in enumerate(blocks, start=1):
        part = f"[{n}] Title: {block.title}\n{block.content}"
        separator = 2 if parts else 0
        remaining = max_chars - used - separator
        if remaining <= 0:
            break
        if len(part) > remaining:
            parts.append(part[:remaining])
            break
        parts.append(part)
        used += separator + len(part)

    return "\n\n".join(parts)


def build_prompt(
    question: str,
    blocks: Sequence[ContextBlock],
    max_context_chars: Optional[int] = None,
) -> str:
    """Fill the generator prompt for a question and its context."""
    return GENERATOR_PROMPT.format(
        question=question,
        context=format_context(blocks, max_context_chars),
    )


def make_generate_node(
    llm: LLMProtocol,
    *,
    max_context_chars: Optional[int] = None,
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
) -> Callable[["AnswerState"], Awaitable[dict]]:
    """Create the node that fills ``prompt`` and ``answer``."""

    async def generate_node(state: "AnswerState") -> dict:
        prompt = build_prompt(
            state["question"],
            state.get("context_blocks", []),
            max_context_chars,
        )
        answer = await llm.ainvoke(prompt, system=system_prompt)
        return {"prompt": prompt, "answer": answer}

    return generate_node
