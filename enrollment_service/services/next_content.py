from __future__ import annotations

from collections.abc import Sequence, Set
from uuid import UUID

from enrollment_service.models.course import LedgerUnit


def next_unit(ordered_units: Sequence[LedgerUnit], completed: Set[UUID]) -> UUID | None:
    """First unit in ``ordered_units`` not in ``completed``, or None.

    ``ordered_units`` must already be in ledger order, i.e. sorted by
    ``LedgerUnit.sort_key`` (explicit order, then creation time).  The
    ledger returns them that way; this is a single linear scan.
    """
    for unit in ordered_units:
        if unit.id not in completed:
            return unit.id
    return None
