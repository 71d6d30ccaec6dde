"""
Question Tree Models

Pydantic models for the question/option aggregate exchanged over the API,
plus the NextStep variant used for "next question" pointers.

Wire and database encoding of a next pointer:
- null  -> not set
- -1    -> flow complete
- N > 0 -> go to question N
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


COMPLETE_SENTINEL = -1


class QuestionType(str, Enum):
    """Input widget a question renders as."""
    TEXT = "text"
    NUMBER = "number"
    RADIO = "radio"
    DROPDOWN = "dropdown"


# Types that follow the question-level next pointer
FREE_INPUT_TYPES = frozenset({QuestionType.TEXT.value, QuestionType.NUMBER.value})

# Types whose flow is driven by option-level next pointers
OPTION_TYPES = frozenset({QuestionType.RADIO.value, QuestionType.DROPDOWN.value})


class NextStepKind(str, Enum):
    UNSET = "unset"
    COMPLETE = "complete"
    GOTO = "goto"


@dataclass(frozen=True)
class NextStep:
    """Where the wizard goes after a question or option."""
    kind: NextStepKind
    question_id: Optional[int] = None

    @classmethod
    def unset(cls) -> "NextStep":
        return cls(NextStepKind.UNSET)

    @classmethod
    def complete(cls) -> "NextStep":
        return cls(NextStepKind.COMPLETE)

    @classmethod
    def goto(cls, question_id: int) -> "NextStep":
        if question_id is None or question_id <= 0:
            raise ValueError(f"Invalid next question id: {question_id}")
        return cls(NextStepKind.GOTO, question_id)

    @classmethod
    def from_wire(cls, value: Optional[int]) -> "NextStep":
        """Decode the integer encoding used on the wire and in the database."""
        if value is None:
            return cls.unset()
        if value == COMPLETE_SENTINEL:
            return cls.complete()
        return cls.goto(value)

    def to_wire(self) -> Optional[int]:
        if self.kind == NextStepKind.COMPLETE:
            return COMPLETE_SENTINEL
        if self.kind == NextStepKind.GOTO:
            return self.question_id
        return None

    @property
    def is_set(self) -> bool:
        return self.kind != NextStepKind.UNSET

    def describe(self) -> str:
        if self.kind == NextStepKind.COMPLETE:
            return "Complete"
        if self.kind == NextStepKind.GOTO:
            return str(self.question_id)
        return "-"


def _check_next_question_id(value: Optional[int]) -> Optional[int]:
    # Raises ValueError for 0 and negatives other than the sentinel
    NextStep.from_wire(value)
    return value


# ===== REQUEST MODELS =====

class OptionIn(BaseModel):
    """
    Option as submitted by the editor.

    No id means "new option". Label emptiness is checked by the service so the
    API can answer with its own 400 message instead of a schema error.
    """
    id: Optional[int] = None
    label: str
    next_question_id: Optional[int] = None
    price_modifier: Optional[float] = None

    @field_validator("next_question_id")
    @classmethod
    def check_next_question_id(cls, value: Optional[int]) -> Optional[int]:
        return _check_next_question_id(value)

    @property
    def next_step(self) -> NextStep:
        return NextStep.from_wire(self.next_question_id)


class QuestionIn(BaseModel):
    """
    Full question aggregate as submitted by the editor.

    ``options`` left out entirely (or null) means "do not touch the existing
    options" on update; an empty list means "remove them all".
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    field: str
    text: str
    subtext: Optional[str] = None
    type: QuestionType
    hint: Optional[str] = None
    validation_key: Optional[str] = Field(default=None, alias="validationKey")
    input: Optional[Dict[str, Any]] = None
    next_question_id: Optional[int] = None
    options: Optional[List[OptionIn]] = None

    @field_validator("next_question_id")
    @classmethod
    def check_next_question_id(cls, value: Optional[int]) -> Optional[int]:
        return _check_next_question_id(value)

    @property
    def next_step(self) -> NextStep:
        return NextStep.from_wire(self.next_question_id)


# ===== RESPONSE MODELS =====

class Option(BaseModel):
    """Persisted option row."""
    id: int
    label: str
    next_question_id: Optional[int] = None
    price_modifier: Optional[float] = 0

    @property
    def next_step(self) -> NextStep:
        return NextStep.from_wire(self.next_question_id)


class Question(BaseModel):
    """Persisted question with its options attached (the aggregate)."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    field: str
    text: str
    subtext: str = ""
    type: str
    hint: str = ""
    validation_key: Optional[str] = Field(default=None, alias="validationKey")
    input: Optional[Dict[str, Any]] = None
    next_question_id: Optional[int] = None
    options: List[Option] = Field(default_factory=list)

    @property
    def next_step(self) -> NextStep:
        return NextStep.from_wire(self.next_question_id)


class QuestionRow(BaseModel):
    """A bare ``questions`` row as returned by create (no options)."""
    id: int
    field: str
    text: str
    subtext: str = ""
    type: str
    hint: str = ""
    validation_key: Optional[str] = None
    input_config: Optional[Dict[str, Any]] = None
    next_question_id: Optional[int] = None


class AckResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str
