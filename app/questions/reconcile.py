"""
Question Tree Option Reconciliation

Pure diff of a question's persisted option ids against the option list an
editor submitted. No store access happens here; the service executes the plan.

Rules:
- every incoming option becomes one upsert (id present -> update, no id -> insert)
- every existing id not resent is deleted
- ``incoming=None`` means "options not part of this update" -> empty plan
- ``incoming=[]`` deletes every existing option
- incoming ids the question does not own are reported, never upserted blindly
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import OptionIn


BLANK_LABEL_MESSAGE = "Option labels cannot be empty"


@dataclass(frozen=True)
class OptionUpsert:
    """One insert-or-update against ``question_options``."""
    id: Optional[int]
    label: str
    next_question_id: Optional[int] = None
    price_modifier: float = 0

    @classmethod
    def from_option(cls, option: OptionIn) -> "OptionUpsert":
        return cls(
            id=option.id,
            label=option.label,
            next_question_id=option.next_question_id,
            price_modifier=option.price_modifier if option.price_modifier is not None else 0,
        )

    @property
    def is_new(self) -> bool:
        return self.id is None


@dataclass(frozen=True)
class OptionSyncPlan:
    """Result of diffing existing option ids against an incoming option list."""
    upserts: Tuple[OptionUpsert, ...] = ()
    deletes: Tuple[int, ...] = ()
    foreign_ids: Tuple[int, ...] = ()
    replaces_options: bool = True

    @property
    def kept_ids(self) -> List[int]:
        """Ids known to survive before new rows get theirs assigned."""
        return [u.id for u in self.upserts if u.id is not None]

    @property
    def inserts(self) -> List[OptionUpsert]:
        return [u for u in self.upserts if u.is_new]

    @property
    def is_valid(self) -> bool:
        return not self.foreign_ids


def blank_label_positions(options: Optional[Sequence[OptionIn]]) -> List[int]:
    """Indexes of options whose label is empty after trimming."""
    if not options:
        return []
    return [i for i, option in enumerate(options) if not option.label.strip()]


def plan_option_sync(
    existing_ids: Iterable[int],
    incoming: Optional[Sequence[OptionIn]],
) -> OptionSyncPlan:
    """
    Build the upsert/delete plan that makes a question's options match
    ``incoming`` exactly.

    Args:
        existing_ids: ids of the option rows the question currently owns
        incoming: submitted options, or None when options were not sent

    Returns:
        OptionSyncPlan with upserts in submission order and deletes sorted
    """
    if incoming is None:
        return OptionSyncPlan(replaces_options=False)

    existing = set(existing_ids)
    upserts = tuple(OptionUpsert.from_option(option) for option in incoming)

    kept = {u.id for u in upserts if u.id is not None}
    foreign = tuple(sorted(kept - existing))
    deletes = tuple(sorted(existing - kept))

    return OptionSyncPlan(
        upserts=upserts,
        deletes=deletes,
        foreign_ids=foreign,
    )
