from dataclasses import replace
from uuid import uuid4

import pytest

from app.core.errors import ConfigurationError, ConflictError
from app.services.conflicts import ReservationConflictChecker
from reservation_testkit import TOMORROW, at

TENANT = uuid4()
ORG = uuid4()
STAFF = uuid4()


@pytest.fixture
def checker(memory_reader):
    return ReservationConflictChecker(memory_reader)


def test_free_interval_passes(checker):
    checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))


def test_same_staff_overlap_is_rejected(checker, memory_reader):
    existing = memory_reader.book(STAFF, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    with pytest.raises(ConflictError) as exc:
        checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "10:30"), at(TOMORROW, "11:30"))

    assert exc.value.message == "O profissional já possui uma reserva neste horário."
    assert [item["reservation_id"] for item in exc.value.conflicts] == [str(existing.reservation_id)]


def test_back_to_back_reservations_are_allowed(checker, memory_reader):
    memory_reader.book(STAFF, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "11:00"), at(TOMORROW, "12:00"))
    checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "09:00"), at(TOMORROW, "10:00"))


def test_rescheduling_ignores_its_own_reservation(checker, memory_reader):
    existing = memory_reader.book(STAFF, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    checker.validate(
        TENANT,
        ORG,
        STAFF,
        at(TOMORROW, "10:30"),
        at(TOMORROW, "11:30"),
        exclude_reservation_id=existing.reservation_id,
    )


def test_capacity_counts_other_staff(checker, memory_reader):
    memory_reader.book(uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))
    memory_reader.book(uuid4(), at(TOMORROW, "10:30"), at(TOMORROW, "11:30"))

    with pytest.raises(ConflictError) as exc:
        checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "10:45"), at(TOMORROW, "11:15"))

    assert exc.value.message == "Não há cadeiras disponíveis neste horário."
    assert len(exc.value.conflicts) == 2


def test_capacity_uses_peak_not_total(checker, memory_reader):
    # Duas reservas no intervalo, mas nunca simultâneas
    memory_reader.book(uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "10:30"))
    memory_reader.book(uuid4(), at(TOMORROW, "10:30"), at(TOMORROW, "11:00"))
    memory_reader.policy = replace(memory_reader.policy, available_sheet=2)

    checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))


def test_single_seat_salon(checker, memory_reader):
    memory_reader.policy = replace(memory_reader.policy, available_sheet=1)
    memory_reader.book(uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    with pytest.raises(ConflictError):
        checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "10:59"), at(TOMORROW, "11:30"))


@pytest.mark.parametrize("start, end", [("11:00", "11:00"), ("12:00", "11:00")])
def test_empty_or_inverted_interval(checker, start, end):
    with pytest.raises(ConfigurationError):
        checker.validate(TENANT, ORG, STAFF, at(TOMORROW, start), at(TOMORROW, end))


def test_missing_configuration(checker, memory_reader):
    memory_reader.policy = None
    with pytest.raises(ConfigurationError):
        checker.validate(TENANT, ORG, STAFF, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))
