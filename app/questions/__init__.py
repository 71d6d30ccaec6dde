"""
Question Tree Module

Persists and edits the branching questionnaire definition: questions, their
options, and the next-question pointers between them. Walking the graph at
answer time is the wizard runtime's job, not this module's.
"""

from .models import (
    COMPLETE_SENTINEL,
    NextStep,
    NextStepKind,
    Option,
    OptionIn,
    Question,
    QuestionIn,
    QuestionRow,
    QuestionType,
)
from .errors import (
    AdminAuthError,
    QuestionError,
    QuestionNotFoundError,
    QuestionStoreError,
    QuestionValidationError,
)
from .reconcile import OptionSyncPlan, OptionUpsert, plan_option_sync
from .config import QuestionsConfig
from .store import QuestionStore
from .service import QuestionService
from .admin import router as questions_router

__all__ = [
    "COMPLETE_SENTINEL",
    "NextStep",
    "NextStepKind",
    "Option",
    "OptionIn",
    "Question",
    "QuestionIn",
    "QuestionRow",
    "QuestionType",
    "AdminAuthError",
    "QuestionError",
    "QuestionNotFoundError",
    "QuestionStoreError",
    "QuestionValidationError",
    "OptionSyncPlan",
    "OptionUpsert",
    "plan_option_sync",
    "QuestionsConfig",
    "QuestionStore",
    "QuestionService",
    "questions_router",
]
