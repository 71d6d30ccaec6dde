"""
Shared fixtures for the question tree tests.

InMemoryQuestionStore mirrors QuestionStore.session(): the same StoreSession
methods over plain dicts, with snapshot/restore standing in for
commit/rollback.
"""

import copy
import os
import sys
from contextlib import contextmanager
from typing import Dict, List, Sequence

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fastapi.testclient import TestClient

from api_server import create_app
from app.questions.config import QuestionsConfig
from app.questions.errors import QuestionStoreError
from app.questions.models import Option, Question, QuestionIn, QuestionRow
from app.questions.reconcile import OptionUpsert
from app.questions.store import serialize_input_config, deserialize_input_config


class InMemorySession:
    def __init__(self, store: "InMemoryQuestionStore"):
        self.store = store

    def _write(self, operation: str = ""):
        if self.store.fail_writes or operation in self.store.fail_on:
            raise QuestionStoreError("simulated store failure")
        self.store.write_count += 1

    def _row(self, question_id: int) -> QuestionRow:
        row = self.store.questions[question_id]
        return QuestionRow(**{**row, "input_config": deserialize_input_config(row["input_config"])})

    def list_questions(self) -> List[Question]:
        if self.store.fail_reads:
            raise QuestionStoreError("simulated store failure")
        out = []
        for qid in sorted(self.store.questions):
            row = self.store.questions[qid]
            options = [
                Option(
                    id=o["id"],
                    label=o["label"],
                    next_question_id=o["next_question_id"],
                    price_modifier=o["price_modifier"],
                )
                for oid, o in sorted(self.store.options.items())
                if o["question_id"] == qid
            ]
            out.append(Question(
                id=row["id"],
                field=row["field"],
                text=row["text"],
                subtext=row["subtext"],
                type=row["type"],
                hint=row["hint"],
                validation_key=row["validation_key"],
                input=deserialize_input_config(row["input_config"]),
                next_question_id=row["next_question_id"],
                options=options,
            ))
        return out

    def question_exists(self, question_id: int) -> bool:
        return question_id in self.store.questions

    def _values(self, payload: QuestionIn) -> Dict:
        return {
            "field": payload.field,
            "text": payload.text,
            "subtext": payload.subtext or "",
            "type": payload.type.value,
            "hint": payload.hint or "",
            "validation_key": payload.validation_key,
            "input_config": serialize_input_config(payload.input),
            "next_question_id": payload.next_question_id,
        }

    def insert_question(self, payload: QuestionIn) -> QuestionRow:
        self._write()
        qid = self.store.next_question_id
        self.store.next_question_id += 1
        self.store.questions[qid] = {"id": qid, **self._values(payload)}
        return self._row(qid)

    def update_question(self, question_id: int, payload: QuestionIn) -> int:
        self._write()
        if question_id not in self.store.questions:
            return 0
        self.store.questions[question_id].update(self._values(payload))
        return 1

    def delete_question(self, question_id: int) -> int:
        self._write()
        if self.store.questions.pop(question_id, None) is None:
            return 0
        for oid in [oid for oid, o in self.store.options.items() if o["question_id"] == question_id]:
            del self.store.options[oid]
        return 1

    def option_ids(self, question_id: int) -> List[int]:
        return sorted(oid for oid, o in self.store.options.items() if o["question_id"] == question_id)

    def insert_option(self, question_id: int, option: OptionUpsert) -> int:
        self._write("insert_option")
        oid = self.store.next_option_id
        self.store.next_option_id += 1
        self.store.options[oid] = {
            "id": oid,
            "question_id": question_id,
            "label": option.label,
            "next_question_id": option.next_question_id,
            "price_modifier": option.price_modifier,
        }
        return oid

    def upsert_option(self, question_id: int, option: OptionUpsert) -> int:
        if option.id is None or option.id not in self.store.options:
            return self.insert_option(question_id, option)
        self._write()
        self.store.options[option.id].update({
            "label": option.label,
            "next_question_id": option.next_question_id,
            "price_modifier": option.price_modifier,
        })
        return option.id

    def delete_options(self, question_id: int, option_ids: Sequence[int]) -> int:
        if not option_ids:
            return 0
        self._write()
        doomed = [
            oid for oid in option_ids
            if oid in self.store.options and self.store.options[oid]["question_id"] == question_id
        ]
        for oid in doomed:
            del self.store.options[oid]
        return len(doomed)


class InMemoryQuestionStore:
    """Drop-in substitute for QuestionStore backed by dicts."""

    def __init__(self):
        self.questions: Dict[int, Dict] = {}
        self.options: Dict[int, Dict] = {}
        self.next_question_id = 1
        self.next_option_id = 1
        self.write_count = 0
        self.fail_reads = False
        self.fail_writes = False
        self.fail_on = set()
        self.schema_ready = False

    @contextmanager
    def session(self):
        snapshot = copy.deepcopy((self.questions, self.options, self.next_question_id, self.next_option_id))
        try:
            yield InMemorySession(self)
        except Exception:
            self.questions, self.options, self.next_question_id, self.next_option_id = snapshot
            raise

    def ensure_schema(self) -> None:
        self.schema_ready = True

    def ping(self) -> bool:
        return not self.fail_reads


@pytest.fixture
def store() -> InMemoryQuestionStore:
    return InMemoryQuestionStore()


@pytest.fixture
def config() -> QuestionsConfig:
    return QuestionsConfig(database_url="", admin_api_key=None, auto_schema=True)


@pytest.fixture
def app(store, config):
    return create_app(store=store, config=config)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
