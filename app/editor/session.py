"""
Question Tree Editor Session
============================
State machine behind the admin editor form.

    idle --open_new()/open_existing()--> editing --save()--> saving
    saving --ok--> idle (list re-fetched)
    saving --error--> editing (error kept, working copy untouched)

Edits only touch the in-memory working copy; nothing is sent until save().
"""

import copy
import logging
import dataclasses
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from app.questions.models import (
    FREE_INPUT_TYPES,
    OPTION_TYPES,
    NextStep,
    NextStepKind,
    Question,
    QuestionType,
)

from .client import QuestionsClient, QuestionsClientError

logger = logging.getLogger(__name__)


BLANK_LABELS_ALERT = "Please fill in all option labels before saving"
NEW_OPTION_LABEL = "New Option"
CHOICE_NOT_SET = ""
CHOICE_COMPLETE = "complete"


class EditorState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SAVING = "saving"


class EditorError(Exception):
    """Editor action not allowed in the current state."""
    pass


@dataclass
class OptionDraft:
    id: Optional[int] = None
    label: str = NEW_OPTION_LABEL
    next_question_id: Optional[int] = None
    price_modifier: Optional[float] = 0


@dataclass
class QuestionDraft:
    """Working copy of one question aggregate."""
    id: Optional[int] = None
    field: str = ""
    text: str = ""
    subtext: str = ""
    type: str = QuestionType.TEXT.value
    hint: str = ""
    validationKey: Optional[str] = None
    input: Optional[Dict[str, Any]] = None
    next_question_id: Optional[int] = None
    options: List[OptionDraft] = dataclasses.field(default_factory=list)

    @classmethod
    def from_question(cls, question: Question) -> "QuestionDraft":
        return cls(
            id=question.id,
            field=question.field,
            text=question.text,
            subtext=question.subtext,
            type=question.type,
            hint=question.hint,
            validationKey=question.validation_key,
            input=copy.deepcopy(question.input),
            next_question_id=question.next_question_id,
            options=[
                OptionDraft(
                    id=o.id,
                    label=o.label,
                    next_question_id=o.next_question_id,
                    price_modifier=o.price_modifier,
                )
                for o in question.options
            ],
        )

    @property
    def is_new(self) -> bool:
        return self.id is None

    def has_blank_labels(self) -> bool:
        return any(not o.label.strip() for o in self.options)

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        if self.is_new:
            payload.pop("id")
        for option in payload["options"]:
            if option["id"] is None:
                option.pop("id")
        return payload


class QuestionEditor:
    """
    Admin editor over a QuestionsClient.

    Holds the fetched list, at most one working copy, and the last error.
    """

    def __init__(self, client: QuestionsClient):
        self.client = client
        self.state = EditorState.IDLE
        self.questions: List[Question] = []
        self.working: Optional[QuestionDraft] = None
        self.error: Optional[str] = None

    # ===== LIST VIEW =====

    def refresh(self) -> List[Question]:
        self.questions = self.client.list_questions()
        return self.questions

    def rows(self) -> List[Dict[str, Any]]:
        """Table rows for the list view."""
        rows = []
        for q in self.questions:
            next_label = q.next_step.describe() if q.type in FREE_INPUT_TYPES else "-"
            rows.append({
                "id": q.id,
                "field": q.field,
                "text": q.text,
                "type": q.type,
                "next": next_label,
            })
        return rows

    def delete_question(self, question_id: int) -> bool:
        """Delete from the list view. Returns False with ``error`` set on failure."""
        self._require(EditorState.IDLE)
        try:
            self.client.delete_question(question_id)
        except QuestionsClientError as e:
            logger.error(f"Delete of question {question_id} failed: {e.message}")
            self.error = e.message
            return False
        logger.info(f"Deleted question {question_id}")
        self.error = None
        self._refresh_after_write()
        return True

    # ===== OPEN / CLOSE =====

    def open_new(self) -> QuestionDraft:
        self._require(EditorState.IDLE)
        self.working = QuestionDraft()
        self.error = None
        self.state = EditorState.EDITING
        return self.working

    def open_existing(self, question_id: int) -> QuestionDraft:
        self._require(EditorState.IDLE)
        question = next((q for q in self.questions if q.id == question_id), None)
        if question is None:
            raise EditorError(f"Question {question_id} is not in the list")
        self.working = QuestionDraft.from_question(question)
        self.error = None
        self.state = EditorState.EDITING
        return self.working

    def cancel(self) -> None:
        self._require(EditorState.EDITING)
        self.working = None
        self.error = None
        self.state = EditorState.IDLE

    @property
    def title(self) -> str:
        if self.working is None:
            return ""
        if self.working.is_new:
            return "Add New Question"
        return f"Edit Question {self.working.id}"

    # ===== EDITS =====

    def set_field(self, name: str, value: Any) -> None:
        draft = self._draft()
        if name in ("id", "options") or not hasattr(draft, name):
            raise EditorError(f"Cannot edit field '{name}'")
        setattr(draft, name, value)

    def set_next_step(self, step: NextStep) -> None:
        self._draft().next_question_id = step.to_wire()

    def set_next_choice(self, value: str) -> None:
        """Apply a value picked from next_question_choices()."""
        if value == CHOICE_NOT_SET:
            self.set_next_step(NextStep.unset())
        elif value == CHOICE_COMPLETE:
            self.set_next_step(NextStep.complete())
        else:
            self.set_next_step(NextStep.goto(int(value)))

    def next_question_choices(self) -> List[Tuple[str, str]]:
        choices = [(CHOICE_NOT_SET, "Not Set"), (CHOICE_COMPLETE, "Complete")]
        choices.extend((str(q.id), f"{q.id} - {q.text[:60]}") for q in self.questions)
        return choices

    def selected_next_choice(self) -> str:
        step = NextStep.from_wire(self._draft().next_question_id)
        if not step.is_set:
            return CHOICE_NOT_SET
        if step.kind == NextStepKind.COMPLETE:
            return CHOICE_COMPLETE
        return str(step.question_id)

    @property
    def shows_next_question(self) -> bool:
        return self._draft().type in FREE_INPUT_TYPES

    @property
    def shows_options(self) -> bool:
        return self._draft().type in OPTION_TYPES

    def add_option(self) -> OptionDraft:
        option = OptionDraft()
        self._draft().options.append(option)
        return option

    def update_option(self, index: int, **changes: Any) -> OptionDraft:
        option = self._draft().options[index]
        for name, value in changes.items():
            if name == "id" or not hasattr(option, name):
                raise EditorError(f"Cannot edit option field '{name}'")
            setattr(option, name, value)
        return option

    def remove_option(self, index: int) -> None:
        del self._draft().options[index]

    # ===== SAVE =====

    def save(self) -> bool:
        """
        Submit the working copy.

        Returns True and goes back to idle on success; returns False and stays
        in editing with ``error`` set otherwise.
        """
        if self.state == EditorState.SAVING:
            raise EditorError("A save is already in flight")
        draft = self._draft()

        if draft.has_blank_labels():
            self.error = BLANK_LABELS_ALERT
            return False

        self.state = EditorState.SAVING
        try:
            if draft.is_new:
                self.client.create_question(draft.to_payload())
            else:
                self.client.update_question(draft.to_payload())
        except QuestionsClientError as e:
            logger.error(f"Save failed: {e.message}")
            self.error = e.message
            self.state = EditorState.EDITING
            return False

        self.working = None
        self.error = None
        self.state = EditorState.IDLE
        self._refresh_after_write()
        return True

    # ===== HELPERS =====

    def _refresh_after_write(self) -> None:
        # The write already went through; a failed re-fetch only leaves the list stale
        try:
            self.refresh()
        except QuestionsClientError as e:
            logger.error(f"List refresh failed: {e.message}")
            self.error = e.message

    def _require(self, state: EditorState) -> None:
        if self.state != state:
            raise EditorError(f"Editor is {self.state.value}, expected {state.value}")

    def _draft(self) -> QuestionDraft:
        if self.state != EditorState.EDITING or self.working is None:
            raise EditorError("No question is open for editing")
        return self.working
