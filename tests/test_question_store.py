"""
Question Store Tests

SQL issued by StoreSession and the transaction handling of
QuestionStore.session(), against a mocked psycopg2 connection.
"""

import json
from unittest.mock import MagicMock

import psycopg2
import pytest

from app.questions.errors import QuestionStoreError
from app.questions.models import QuestionIn
from app.questions.reconcile import OptionUpsert
from app.questions.store import (
    SCHEMA_SQL,
    UPSERT_OPTION_SQL,
    QuestionStore,
    StoreSession,
    question_from_row,
    question_values,
    serialize_input_config,
)


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def connection(cursor):
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn


@pytest.fixture
def pg_store(connection):
    return QuestionStore(connect=MagicMock(return_value=connection))


class TestTransactions:

    def test_commit_on_success(self, pg_store, connection, cursor):
        cursor.fetchall.return_value = []

        with pg_store.session() as db:
            assert db.list_questions() == []

        connection.commit.assert_called_once()
        connection.rollback.assert_not_called()
        connection.close.assert_called_once()

    def test_driver_error_rolls_back(self, pg_store, connection, cursor):
        cursor.execute.side_effect = psycopg2.OperationalError("boom")

        with pytest.raises(QuestionStoreError) as exc:
            with pg_store.session() as db:
                db.delete_question(1)

        assert exc.value.message == "boom"
        connection.rollback.assert_called_once()
        connection.commit.assert_not_called()
        connection.close.assert_called_once()

    def test_other_errors_roll_back_and_propagate(self, pg_store, connection):
        with pytest.raises(KeyError):
            with pg_store.session():
                raise KeyError("x")

        connection.rollback.assert_called_once()
        connection.close.assert_called_once()

    def test_connect_failure(self):
        store = QuestionStore(connect=MagicMock(side_effect=psycopg2.OperationalError("no route")))

        with pytest.raises(QuestionStoreError):
            with store.session():
                pass

    def test_ping(self, pg_store, cursor):
        cursor.fetchone.return_value = {"ok": 1}
        assert pg_store.ping() is True

    def test_ping_failure(self):
        store = QuestionStore(connect=MagicMock(side_effect=psycopg2.OperationalError("down")))
        assert store.ping() is False

    def test_ensure_schema(self, pg_store, connection, cursor):
        pg_store.ensure_schema()

        cursor.execute.assert_called_once_with(SCHEMA_SQL)
        connection.commit.assert_called_once()


class TestStatements:

    def test_insert_question_applies_defaults(self, cursor):
        cursor.fetchone.return_value = {
            "id": 9, "field": "age", "text": "Age?", "subtext": "", "type": "number",
            "hint": "", "validation_key": None, "input_config": '{"min": 0}', "next_question_id": -1,
        }
        payload = QuestionIn(field="age", text="Age?", type="number", input={"min": 0}, next_question_id=-1)

        row = StoreSession(cursor).insert_question(payload)

        sql, params = cursor.execute.call_args[0]
        assert "RETURNING" in sql
        assert params == ("age", "Age?", "", "number", "", None, '{"min": 0}', -1)
        assert row.id == 9
        assert row.input_config == {"min": 0}

    def test_update_question_targets_id(self, cursor):
        cursor.rowcount = 1
        payload = QuestionIn(field="f", text="t", type="text", subtext="s", validationKey="zip")

        assert StoreSession(cursor).update_question(4, payload) == 1
        params = cursor.execute.call_args[0][1]
        assert params == ("f", "t", "s", "text", "", "zip", None, None, 4)

    def test_question_exists_locks_row(self, cursor):
        cursor.fetchone.return_value = None

        assert StoreSession(cursor).question_exists(3) is False
        assert "FOR UPDATE" in cursor.execute.call_args[0][0]

    def test_upsert_option(self, cursor):
        cursor.fetchone.return_value = {"id": 21}
        upsert = OptionUpsert(id=None, label="Yes", next_question_id=-1, price_modifier=2.5)

        assert StoreSession(cursor).upsert_option(5, upsert) == 21
        cursor.execute.assert_called_once_with(UPSERT_OPTION_SQL, (None, 5, "Yes", -1, 2.5))

    def test_delete_options_uses_any(self, cursor):
        cursor.rowcount = 2

        assert StoreSession(cursor).delete_options(5, (7, 8)) == 2
        sql, params = cursor.execute.call_args[0]
        assert "ANY(%s)" in sql
        assert params == (5, [7, 8])

    def test_delete_options_skips_empty(self, cursor):
        assert StoreSession(cursor).delete_options(5, ()) == 0
        cursor.execute.assert_not_called()

    def test_option_ids(self, cursor):
        cursor.fetchall.return_value = [{"id": 1}, {"id": 4}]
        assert StoreSession(cursor).option_ids(2) == [1, 4]

    def test_unreadable_row_raises_store_error(self, cursor):
        cursor.fetchall.return_value = [{"id": 1, "field": "f", "text": "t", "type": "text", "input_config": "{not json"}]

        with pytest.raises(QuestionStoreError) as exc:
            StoreSession(cursor).list_questions()
        assert exc.value.status_code == 500


class TestSchema:

    def test_price_modifier_is_unconstrained_numeric(self):
        assert "price_modifier NUMERIC DEFAULT 0" in SCHEMA_SQL
        assert "ALTER COLUMN price_modifier TYPE NUMERIC;" in SCHEMA_SQL

    def test_options_cascade_with_question(self):
        assert "REFERENCES questions(id) ON DELETE CASCADE" in SCHEMA_SQL


class TestRowMapping:

    def test_question_from_row(self):
        question = question_from_row({
            "id": 1, "field": "plan", "text": "Plan?", "subtext": None, "type": "radio",
            "hint": None, "validation_key": None, "input_config": None, "next_question_id": None,
            "options": [{"id": 3, "label": "Pro", "next_question_id": 2, "price_modifier": 10}],
        })

        assert question.subtext == ""
        assert question.options[0].label == "Pro"
        assert question.options[0].next_step.question_id == 2

    def test_options_as_json_text(self):
        question = question_from_row({
            "id": 1, "field": "f", "text": "t", "type": "text",
            "options": json.dumps([]),
        })
        assert question.options == []

    def test_empty_input_config_kept(self):
        assert serialize_input_config({}) == "{}"
        assert serialize_input_config(None) is None

    def test_question_values_defaults(self):
        values = question_values(QuestionIn(field="f", text="t", type="dropdown"))
        assert values == ("f", "t", "", "dropdown", "", None, None, None)
