import pytest
from peewee import IntegrityError, InterfaceError, OperationalError

from database.models import Project, Unit, UnitStatus
from factories import make_project, make_unit
from services.errors import (
    DependencyError,
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
)
from services.query_utils import (
    build_or_condition,
    get_or_not_found,
    read_with_retry,
    swap_status,
)


def test_read_with_retry_retries_once():
    calls = []

    def fetch():
        calls.append(1)
        if len(calls) == 1:
            raise InterfaceError("connection already closed")
        return "ok"

    assert read_with_retry(fetch, what="тест") == "ok"
    assert len(calls) == 2


def test_read_with_retry_gives_up_after_second_failure():
    calls = []

    def fetch():
        calls.append(1)
        raise OperationalError("server closed the connection")

    with pytest.raises(DependencyError):
        read_with_retry(fetch, what="тест")
    assert len(calls) == 2


def test_read_with_retry_does_not_retry_other_errors():
    calls = []

    def fetch():
        calls.append(1)
        raise IntegrityError("constraint")

    with pytest.raises(DependencyError):
        read_with_retry(fetch)
    assert len(calls) == 1


def test_get_or_not_found(in_memory_db):
    project = make_project()
    assert get_or_not_found(Project, project.id, "Проект").id == project.id
    with pytest.raises(NotFoundError):
        get_or_not_found(Project, project.id + 100, "Проект")
    with pytest.raises(NotFoundError):
        get_or_not_found(Project, None, "Проект")


def test_swap_status_changes_matching_row(in_memory_db):
    unit = make_unit(make_project())
    changed = swap_status(
        Unit, "unit", unit.id, UnitStatus.RESERVED, expected=[UnitStatus.AVAILABLE]
    )
    assert changed == 1
    assert Unit.get_by_id(unit.id).status == "reserved"


def test_swap_status_sets_extra_fields(in_memory_db):
    unit = make_unit(make_project(), status=UnitStatus.RESERVED.value)
    swap_status(Unit, "unit", unit.id, UnitStatus.SOLD, block_no="B")
    assert Unit.get_by_id(unit.id).block_no == "B"


def test_swap_status_lost_race_is_stale(in_memory_db):
    unit = make_unit(make_project(), status=UnitStatus.RESERVED.value)
    with pytest.raises(StaleStateError) as exc_info:
        swap_status(
            Unit, "unit", unit.id, UnitStatus.RESERVED, expected=[UnitStatus.SOLD]
        )
    assert exc_info.value.actual == "reserved"
    assert Unit.get_by_id(unit.id).status == "reserved"


def test_swap_status_forbidden_edge(in_memory_db):
    unit = make_unit(make_project())
    with pytest.raises(InvalidTransitionError):
        swap_status(Unit, "unit", unit.id, UnitStatus.SOLD)
    with pytest.raises(InvalidTransitionError):
        swap_status(
            Unit, "unit", unit.id, UnitStatus.SOLD, expected=[UnitStatus.AVAILABLE]
        )


def test_swap_status_missing_row(in_memory_db):
    with pytest.raises(NotFoundError):
        swap_status(Unit, "unit", 404, UnitStatus.RESERVED)


def test_build_or_condition(in_memory_db):
    assert build_or_condition([Unit.unit_code], "") is None
    assert build_or_condition([], "A") is None
    condition = build_or_condition([Unit.unit_code, Unit.block_no], "A")
    query = Unit.select().where(condition)
    sql, params = query.sql()
    assert " OR " in sql
    assert params.count("%A%") == 2
