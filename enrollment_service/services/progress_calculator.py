"""Duration-weighted course completion.

A unit's weight is its duration in seconds.  Units with no duration (or a
duration of 0, e.g. a study PDF) weigh 1 so that they still count toward
completion.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Set
from uuid import UUID

from enrollment_service.models.course import LedgerUnit

_DEFAULT_WEIGHT = 1


def unit_weight(unit: LedgerUnit) -> int:
    return unit.duration_seconds or _DEFAULT_WEIGHT


def weighted_progress(completed_ids: Set[UUID], ledger: Iterable[LedgerUnit]) -> int:
    """Return the completion percentage (0..100) of ``ledger`` covered by
    ``completed_ids``.

    ``ledger`` is the course's currently published units.  Completed ids
    that are no longer in the ledger do not count.  An empty ledger yields 0.
    Rounds half up.
    """
    total = 0
    done = 0
    for unit in ledger:
        weight = unit_weight(unit)
        total += weight
        if unit.id in completed_ids:
            done += weight

    if total == 0:
        return 0
    return min(100, math.floor(100 * done / total + 0.5))
