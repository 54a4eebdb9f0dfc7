"""
LangGraph workflow definition and state management.

Components:
    - state: TypedDict defining the graph state schema
    - workflow: Graph construction and the AnswerOrchestrator
"""

from notesqa.graph.state import AnswerState, ContextBlock, SourceCitation
from notesqa.graph.workflow import AnswerError, AnswerOrchestrator, AnswerResult, build_graph

__all__ = [
    "AnswerState",
    "ContextBlock",
    "SourceCitation",
    "AnswerError",
    "AnswerOrchestrator",
    "AnswerResult",
    "build_graph",
]
