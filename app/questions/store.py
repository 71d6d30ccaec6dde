"""
Question Tree Store
===================
Postgres access for ``questions`` and ``question_options``.

The store is a constructed handle (no module-level connection). Every API
operation opens one connection and runs inside one transaction:

    store = QuestionStore(database_url)
    with store.session() as db:
        questions = db.list_questions()

Commit happens when the ``with`` block exits cleanly; any error rolls back.
Driver errors are re-raised as QuestionStoreError.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import psycopg2
from psycopg2.extras import RealDictCursor

from .config import QuestionsConfig
from .errors import QuestionStoreError
from .models import Option, Question, QuestionIn, QuestionRow
from .reconcile import OptionUpsert

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS questions (
        id BIGSERIAL PRIMARY KEY,
        field VARCHAR(255) NOT NULL,
        text TEXT NOT NULL,
        subtext TEXT NOT NULL DEFAULT '',
        type VARCHAR(20) NOT NULL,
        hint TEXT NOT NULL DEFAULT '',
        validation_key VARCHAR(255),
        input_config TEXT,
        next_question_id BIGINT
    );

    CREATE TABLE IF NOT EXISTS question_options (
        id BIGSERIAL PRIMARY KEY,
        question_id BIGINT NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
        label TEXT NOT NULL,
        next_question_id BIGINT,
        price_modifier NUMERIC DEFAULT 0
    );

    -- widens tables created with the earlier NUMERIC(10, 2) column
    ALTER TABLE question_options
        ALTER COLUMN price_modifier TYPE NUMERIC;

    CREATE INDEX IF NOT EXISTS idx_question_options_question_id
        ON question_options(question_id);
"""

QUESTION_COLUMNS = """
    id, field, text, subtext, type, hint,
    validation_key, input_config, next_question_id
"""

LIST_QUESTIONS_SQL = """
    SELECT q.id, q.field, q.text, q.subtext, q.type, q.hint,
           q.validation_key, q.input_config, q.next_question_id,
           COALESCE(
               json_agg(
                   json_build_object(
                       'id',               o.id,
                       'label',            o.label,
                       'next_question_id', o.next_question_id,
                       'price_modifier',   o.price_modifier
                   ) ORDER BY o.id
               ) FILTER (WHERE o.id IS NOT NULL),
               '[]'::json
           ) AS options
    FROM questions q
    LEFT JOIN question_options o ON o.question_id = q.id
    GROUP BY q.id
    ORDER BY q.id
"""

# New rows draw from the serial sequence inside the same statement, so one
# upsert covers both the insert and the update path.
UPSERT_OPTION_SQL = """
    INSERT INTO question_options
        (id, question_id, label, next_question_id, price_modifier)
    VALUES (
        COALESCE(%s, nextval(pg_get_serial_sequence('question_options', 'id'))),
        %s, %s, %s, %s
    )
    ON CONFLICT (id) DO UPDATE
       SET label            = EXCLUDED.label,
           next_question_id = EXCLUDED.next_question_id,
           price_modifier   = EXCLUDED.price_modifier
    RETURNING id
"""


def serialize_input_config(value: Optional[Dict[str, Any]]) -> Optional[str]:
    """Serialize the structured ``input`` config for the TEXT column."""
    if value is None:
        return None
    return json.dumps(value)


def deserialize_input_config(value: Any) -> Optional[Dict[str, Any]]:
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        return value
    return json.loads(value)


def question_values(payload: QuestionIn) -> tuple:
    """Column values for insert/update, with the documented defaults applied."""
    return (
        payload.field,
        payload.text,
        payload.subtext or "",
        payload.type.value,
        payload.hint or "",
        payload.validation_key,
        serialize_input_config(payload.input),
        payload.next_question_id,
    )


def question_from_row(row: Dict[str, Any]) -> Question:
    options = row.get("options") or []
    if isinstance(options, str):
        options = json.loads(options)
    return Question(
        id=int(row["id"]),
        field=str(row["field"]),
        text=str(row["text"]),
        subtext=row.get("subtext") or "",
        type=str(row["type"]),
        hint=row.get("hint") or "",
        validation_key=row.get("validation_key"),
        input=deserialize_input_config(row.get("input_config")),
        next_question_id=row.get("next_question_id"),
        options=[Option(**o) for o in options if o.get("id") is not None],
    )


def question_row_from_row(row: Dict[str, Any]) -> QuestionRow:
    return QuestionRow(
        id=int(row["id"]),
        field=str(row["field"]),
        text=str(row["text"]),
        subtext=row.get("subtext") or "",
        type=str(row["type"]),
        hint=row.get("hint") or "",
        validation_key=row.get("validation_key"),
        input_config=deserialize_input_config(row.get("input_config")),
        next_question_id=row.get("next_question_id"),
    )


class StoreSession:
    """Statements against one open cursor. Obtain via QuestionStore.session()."""

    def __init__(self, cursor):
        self.cur = cursor

    # ===== QUESTIONS =====

    def list_questions(self) -> List[Question]:
        self.cur.execute(LIST_QUESTIONS_SQL)
        rows = self.cur.fetchall()
        try:
            return [question_from_row(row) for row in rows]
        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"Unreadable question row: {e}")
            raise QuestionStoreError(f"Unreadable question row: {e}") from e

    def question_exists(self, question_id: int) -> bool:
        """Check for the question and lock its row until commit."""
        self.cur.execute(
            "SELECT id FROM questions WHERE id = %s FOR UPDATE",
            (question_id,),
        )
        return self.cur.fetchone() is not None

    def insert_question(self, payload: QuestionIn) -> QuestionRow:
        self.cur.execute(f"""
            INSERT INTO questions
                (field, text, subtext, type, hint,
                 validation_key, input_config, next_question_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {QUESTION_COLUMNS}
        """, question_values(payload))
        return question_row_from_row(self.cur.fetchone())

    def update_question(self, question_id: int, payload: QuestionIn) -> int:
        self.cur.execute("""
            UPDATE questions
               SET field            = %s,
                   text             = %s,
                   subtext          = %s,
                   type             = %s,
                   hint             = %s,
                   validation_key   = %s,
                   input_config     = %s,
                   next_question_id = %s
             WHERE id = %s
        """, question_values(payload) + (question_id,))
        return self.cur.rowcount

    def delete_question(self, question_id: int) -> int:
        # question_options rows go with it through ON DELETE CASCADE
        self.cur.execute("DELETE FROM questions WHERE id = %s", (question_id,))
        return self.cur.rowcount

    # ===== OPTIONS =====

    def option_ids(self, question_id: int) -> List[int]:
        self.cur.execute(
            "SELECT id FROM question_options WHERE question_id = %s ORDER BY id",
            (question_id,),
        )
        return [int(row["id"]) for row in self.cur.fetchall()]

    def insert_option(self, question_id: int, option: OptionUpsert) -> int:
        self.cur.execute("""
            INSERT INTO question_options
                (question_id, label, next_question_id, price_modifier)
            VALUES (%s, %s, %s, %s)
            RETURNING id
        """, (question_id, option.label, option.next_question_id, option.price_modifier))
        return int(self.cur.fetchone()["id"])

    def upsert_option(self, question_id: int, option: OptionUpsert) -> int:
        self.cur.execute(UPSERT_OPTION_SQL, (
            option.id,
            question_id,
            option.label,
            option.next_question_id,
            option.price_modifier,
        ))
        return int(self.cur.fetchone()["id"])

    def delete_options(self, question_id: int, option_ids: Sequence[int]) -> int:
        if not option_ids:
            return 0
        self.cur.execute(
            "DELETE FROM question_options WHERE question_id = %s AND id = ANY(%s)",
            (question_id, list(option_ids)),
        )
        return self.cur.rowcount


class QuestionStore:
    """
    Connection handle for the question tables.

    Args:
        database_url: libpq DSN or URL
        connect: optional zero-argument connection factory (tests, pooling)
    """

    def __init__(self, database_url: Optional[str] = None, connect: Optional[Callable[[], Any]] = None):
        self.database_url = database_url
        self._connect = connect or self._default_connect

    @classmethod
    def from_config(cls, config: QuestionsConfig) -> "QuestionStore":
        return cls(config.database_url)

    def _default_connect(self):
        return psycopg2.connect(self.database_url, cursor_factory=RealDictCursor)

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        try:
            conn = self._connect()
        except psycopg2.Error as e:
            logger.error(f"Database connection failed: {e}")
            raise QuestionStoreError(str(e).strip()) from e

        try:
            with conn.cursor() as cur:
                yield StoreSession(cur)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Question store statement failed: {e}")
            raise QuestionStoreError(str(e).strip()) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        """Create the question tables if they do not exist."""
        with self.session() as db:
            db.cur.execute(SCHEMA_SQL)
        logger.info("Question tables ready")

    def ping(self) -> bool:
        try:
            with self.session() as db:
                db.cur.execute("SELECT 1 AS ok")
                return db.cur.fetchone() is not None
        except QuestionStoreError:
            return False
