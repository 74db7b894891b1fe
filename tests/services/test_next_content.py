from __future__ import annotations

import asyncio

from enrollment_service.services.enrollment_service import content_ledger
from enrollment_service.services.next_content import next_unit
from tests.conftest import add_test_unit, create_test_course


def test_order_then_creation_time_decides_next_unit() -> None:
    course = create_test_course()
    a = add_test_unit(course.id, position=2, created_at=100)
    b = add_test_unit(course.id, position=1, created_at=200)
    c = add_test_unit(course.id, position=1, created_at=150)

    ledger = asyncio.run(content_ledger.get_published_content(course.id))

    assert next_unit(ledger, frozenset()) == c.id
    assert next_unit(ledger, frozenset({c.id})) == b.id
    assert next_unit(ledger, frozenset({c.id, b.id})) == a.id
    assert next_unit(ledger, frozenset({a.id, b.id, c.id})) is None


def test_skips_completed_units_out_of_order() -> None:
    course = create_test_course()
    first = add_test_unit(course.id, position=1)
    second = add_test_unit(course.id, position=2)

    ledger = asyncio.run(content_ledger.get_published_content(course.id))

    assert next_unit(ledger, frozenset({second.id})) == first.id


def test_unpublished_units_are_never_next() -> None:
    course = create_test_course()
    add_test_unit(course.id, position=1, status="draft")
    published = add_test_unit(course.id, position=2)

    ledger = asyncio.run(content_ledger.get_published_content(course.id))

    assert [u.id for u in ledger] == [published.id]
    assert next_unit(ledger, frozenset()) == published.id


def test_empty_course_has_no_next_unit() -> None:
    assert next_unit([], frozenset()) is None
