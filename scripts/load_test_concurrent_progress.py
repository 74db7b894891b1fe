#!/usr/bin/env python3
"""Load test: many concurrent progress reports against one enrollment.

RUN:  python scripts/load_test_concurrent_progress.py

Fires one completing report per unit, all at once, through the service
layer and checks that none of them was lost.  With REDIS_URL set the
per-enrollment lock goes through Redis; otherwise it is in-process.
"""

from __future__ import annotations

import asyncio
import sys
import time

from enrollment_service.core.errors import ConflictError
from enrollment_service.models.course import ContentUnit, Course
from enrollment_service.repos.content_ledger import InMemoryContentLedger
from enrollment_service.services.enrollment_service import (
    content_ledger,
    enrollment_service,
)

UNITS = 40
LEARNER = "load-test-learner"


async def run() -> int:
    if not isinstance(content_ledger, InMemoryContentLedger):
        print("unset DATABASE_URL to run the load test against memory")
        return 1

    now = int(time.time())
    course = Course.new(slug="load-test", title="Load Test", status="ongoing")
    content_ledger.add_course(course)
    units = [
        ContentUnit.new(
            course_id=course.id,
            kind="recorded_class",
            title=f"Unit {i}",
            position=i,
            created_at=now,
            duration_seconds=60,
        )
        for i in range(UNITS)
    ]
    for unit in units:
        content_ledger.add_unit(unit)

    result = await enrollment_service.enroll(LEARNER, course.id)
    enrollment_id = result.enrollment.id

    print("Concurrent Progress Load Test")
    print("=" * 50)
    print(f"Units: {UNITS}")

    start = time.monotonic()
    outcomes = await asyncio.gather(
        *(
            enrollment_service.record_progress(
                enrollment_id, LEARNER, unit.id, 100.0, 60
            )
            for unit in units
        ),
        return_exceptions=True,
    )
    elapsed = time.monotonic() - start

    conflicts = sum(1 for o in outcomes if isinstance(o, ConflictError))
    failures = [
        o
        for o in outcomes
        if isinstance(o, BaseException) and not isinstance(o, ConflictError)
    ]
    final = await enrollment_service.get_enrollment_admin(enrollment_id)

    print(f"Elapsed:          {elapsed * 1000:.1f}ms")
    print(f"Conflicts (409):  {conflicts}")
    print(f"Other failures:   {len(failures)}")
    print(f"Completed units:  {len(final.completed_units)}/{UNITS}")
    print(f"Progress:         {final.progress_percentage}%")
    print(f"Time spent:       {final.total_time_spent}s")

    if failures or len(final.completed_units) != UNITS - conflicts:
        print("FAIL: lost updates detected")
        return 1
    print("OK: every accepted report is reflected")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run()))
