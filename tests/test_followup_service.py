from datetime import date

import pytest

from database.models import Client, ClientStatus, FollowUp
from factories import make_project, make_unit
from services.errors import (
    AccessDeniedError,
    ConsistencyWarning,
    DependencyError,
    ValidationError,
)
from services.followups import followup_service as fs
from services.followups import list_follow_ups, record_follow_up


def _status(client) -> str:
    return Client.get_by_id(client.id).status


@pytest.mark.parametrize(
    "follow_type, expected",
    [
        ("visit", ClientStatus.VISITED.value),
        ("call", ClientStatus.INTERESTED.value),
        ("whatsapp", ClientStatus.INTERESTED.value),
    ],
)
@pytest.mark.parametrize("start", [s.value for s in ClientStatus])
def test_follow_up_overwrites_client_status(seller, client, follow_type, expected, start):
    Client.update(status=start).where(Client.id == client.id).execute()

    record_follow_up(seller, client.id, follow_type, "ok", visit_location="Офис")

    assert _status(client) == expected
    assert FollowUp.select().where(FollowUp.client == client.id).count() == 1


@pytest.mark.parametrize("location", [None, "", "   "])
def test_visit_without_location_writes_nothing(seller, client, location):
    Client.update(status=ClientStatus.INTERESTED.value).where(
        Client.id == client.id
    ).execute()

    with pytest.raises(ValidationError):
        record_follow_up(seller, client.id, "visit", "пришёл", visit_location=location)

    assert FollowUp.select().count() == 0
    assert _status(client) == ClientStatus.INTERESTED.value


def test_unknown_follow_up_type(seller, client):
    with pytest.raises(ValidationError):
        record_follow_up(seller, client.id, "email")
    assert FollowUp.select().count() == 0


def test_notes_are_combined_with_details(seller, client):
    follow_up = record_follow_up(
        seller,
        client.id,
        "call",
        "перезвонить вечером",
        "2024-06-01",
        details="Нет ответа",
    )
    assert follow_up.notes == "Нет ответа - перезвонить вечером"
    assert FollowUp.get_by_id(follow_up.id).next_follow_up_date == date(2024, 6, 1)

    only_details = record_follow_up(seller, client.id, "call", details="Занят")
    assert only_details.notes == "Занят"


def test_visit_location_is_stored_only_for_visits(seller, client):
    call = record_follow_up(seller, client.id, "call", visit_location="Офис")
    visit = record_follow_up(seller, client.id, "visit", visit_location=" Шоурум ")
    assert call.visit_location is None
    assert visit.visit_location == "Шоурум"


def test_follow_up_requires_actor(client):
    with pytest.raises(AccessDeniedError):
        record_follow_up(None, client.id, "call")


def test_follow_up_unit_outside_seller_projects(seller, client):
    foreign = make_unit(make_project("Чужой"))
    with pytest.raises(AccessDeniedError):
        record_follow_up(seller, client.id, "call", unit_id=foreign.id)
    assert FollowUp.select().count() == 0


def test_follow_up_links_unit(seller, client, unit):
    follow_up = record_follow_up(seller, client.id, "call", unit_id=unit.id)
    assert follow_up.unit_id == unit.id


def test_list_follow_ups_newest_first(seller, client):
    first = record_follow_up(seller, client.id, "call", "1")
    second = record_follow_up(seller, client.id, "whatsapp", "2")
    assert [f.id for f in list_follow_ups(client.id)] == [second.id, first.id]


def test_atomic_follow_up_rolls_back_insert(seller, client, monkeypatch):
    def boom(*args, **kwargs):
        raise DependencyError("нет связи")

    monkeypatch.setattr(fs, "swap_status", boom)

    with pytest.raises(DependencyError):
        record_follow_up(seller, client.id, "call", atomic=True)

    assert FollowUp.select().count() == 0
    assert _status(client) == ClientStatus.NEW.value


def test_non_atomic_follow_up_reports_partial_write(seller, client, monkeypatch):
    real_swap = fs.swap_status
    calls = {"n": 0}

    def flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise DependencyError("нет связи")
        return real_swap(*args, **kwargs)

    monkeypatch.setattr(fs, "swap_status", flaky)

    with pytest.raises(ConsistencyWarning) as exc_info:
        record_follow_up(seller, client.id, "visit", visit_location="Офис", atomic=False)

    warning = exc_info.value
    assert FollowUp.select().count() == 1
    assert _status(client) == ClientStatus.NEW.value
    assert warning.transition.pending == ["client_status"]

    follow_up = warning.resume()
    assert follow_up.id == FollowUp.get().id
    assert _status(client) == ClientStatus.VISITED.value
