"""Question Tree admin editor: API client and editing session."""

from .client import QuestionsClient, QuestionsClientError
from .session import EditorError, EditorState, OptionDraft, QuestionDraft, QuestionEditor

__all__ = [
    "QuestionsClient",
    "QuestionsClientError",
    "EditorError",
    "EditorState",
    "OptionDraft",
    "QuestionDraft",
    "QuestionEditor",
]
