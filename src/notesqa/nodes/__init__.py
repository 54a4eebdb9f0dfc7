"""
LangGraph nodes for the question-answering workflow.

Each node is built by a factory that binds its collaborators:
    - question: embeds the question, retrieves the tenant's best chunks
    - assembler: resolves titles, builds context blocks and citations
    - generator: prompts the text generator with the assembled context

All nodes take the AnswerState and return the keys they fill in.
"""

from notesqa.nodes.assembler import AssembledContext, assemble, make_assemble_node
from notesqa.nodes.generator import build_prompt, format_context, make_generate_node
from notesqa.nodes.question import make_embed_question_node, make_retrieve_node

__all__ = [
    "AssembledContext",
    "assemble",
    "make_assemble_node",
    "build_prompt",
    "format_context",
    "make_generate_node",
    "make_embed_question_node",
    "make_retrieve_node",
]
