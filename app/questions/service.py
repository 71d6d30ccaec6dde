"""
Question Tree Service
=====================
List / create / update / delete for question aggregates.

All checks that can reject a request (missing id, blank option labels,
foreign option ids, unknown question) run before the first write.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import QuestionNotFoundError, QuestionValidationError
from .models import OptionIn, Question, QuestionIn, QuestionRow
from .reconcile import BLANK_LABEL_MESSAGE, OptionUpsert, blank_label_positions, plan_option_sync

logger = logging.getLogger(__name__)


MISSING_ID_MESSAGE = "id is required for PUT"


@dataclass
class UpdateResult:
    """What an update did to the question's option rows."""
    question_id: int
    kept_ids: List[int] = field(default_factory=list)
    inserted_ids: List[int] = field(default_factory=list)
    deleted_ids: List[int] = field(default_factory=list)
    options_replaced: bool = True


def ensure_option_labels(options: Optional[Sequence[OptionIn]]) -> None:
    if blank_label_positions(options):
        raise QuestionValidationError(BLANK_LABEL_MESSAGE)


class QuestionService:
    """
    Operations over the question tables.

    Args:
        store: QuestionStore (or any object exposing the same ``session()``)
    """

    def __init__(self, store):
        self.store = store

    def list_questions(self) -> List[Question]:
        with self.store.session() as db:
            return db.list_questions()

    def create_question(self, payload: QuestionIn) -> QuestionRow:
        """
        Insert the question row, then its options under the new id.

        An id on the payload or on its options is ignored: create always
        produces fresh rows.
        """
        ensure_option_labels(payload.options)

        with self.store.session() as db:
            row = db.insert_question(payload)
            option_ids = [
                db.insert_option(row.id, OptionUpsert.from_option(option))
                for option in payload.options or []
            ]

        logger.info(f"Created question {row.id} ({row.field}) with {len(option_ids)} options")
        return row

    def update_question(self, payload: QuestionIn) -> UpdateResult:
        """
        Overwrite the question row and reconcile its options.

        Steps:
        1. replace every scalar column (omitted optionals fall back to defaults)
        2. upsert each incoming option by id, collecting the kept ids
        3. delete the question's option rows that were not resent
        """
        if payload.id is None:
            raise QuestionValidationError(MISSING_ID_MESSAGE)
        ensure_option_labels(payload.options)

        question_id = payload.id
        with self.store.session() as db:
            if not db.question_exists(question_id):
                raise QuestionNotFoundError(f"Question {question_id} not found")

            plan = plan_option_sync(db.option_ids(question_id), payload.options)
            if not plan.is_valid:
                raise QuestionValidationError(
                    f"Option {plan.foreign_ids[0]} does not belong to question {question_id}"
                )

            db.update_question(question_id, payload)

            result = UpdateResult(question_id=question_id, options_replaced=plan.replaces_options)
            for upsert in plan.upserts:
                option_id = db.upsert_option(question_id, upsert)
                result.kept_ids.append(option_id)
                if upsert.is_new:
                    result.inserted_ids.append(option_id)

            db.delete_options(question_id, plan.deletes)
            result.deleted_ids = list(plan.deletes)

        logger.info(
            f"Updated question {question_id}: kept={len(result.kept_ids)} "
            f"inserted={len(result.inserted_ids)} deleted={len(result.deleted_ids)}"
        )
        return result

    def delete_question(self, question_id: int) -> bool:
        """Delete a question; its options cascade. Returns False if it did not exist."""
        with self.store.session() as db:
            deleted = db.delete_question(question_id)

        if deleted:
            logger.info(f"Deleted question {question_id}")
        else:
            logger.info(f"Delete of question {question_id} matched no row")
        return bool(deleted)
