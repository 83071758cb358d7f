import pytest

from app.core.errors import InvalidTransitionError
from app.models.reservation import RecordState, Reservation, ReservationStatus, ensure_transition


def _reservation(status=ReservationStatus.PENDING, record_state=RecordState.ACTIVE):
    return Reservation(status=status, record_state=record_state)


def test_happy_path_to_completed():
    reservation = _reservation()

    reservation.transition_status(ReservationStatus.CONFIRMED)
    reservation.transition_status(ReservationStatus.COMPLETED)

    assert reservation.status == ReservationStatus.COMPLETED


@pytest.mark.parametrize("status", [ReservationStatus.PENDING, ReservationStatus.CONFIRMED])
def test_open_reservations_can_be_canceled(status):
    reservation = _reservation(status)
    reservation.transition_status(ReservationStatus.CANCELED)
    assert reservation.status == ReservationStatus.CANCELED


@pytest.mark.parametrize(
    "current, target",
    [
        (ReservationStatus.PENDING, ReservationStatus.COMPLETED),
        (ReservationStatus.CONFIRMED, ReservationStatus.PENDING),
        (ReservationStatus.COMPLETED, ReservationStatus.CANCELED),
        (ReservationStatus.CANCELED, ReservationStatus.CONFIRMED),
    ],
)
def test_invalid_status_transitions(current, target):
    reservation = _reservation(current)

    with pytest.raises(InvalidTransitionError) as exc:
        reservation.transition_status(target)

    assert reservation.status == current
    assert (exc.value.current, exc.value.target) == (current, target)


def test_record_state_cycle():
    reservation = _reservation()

    reservation.transition_record_state(RecordState.ARCHIVED)
    reservation.transition_record_state(RecordState.ACTIVE)
    reservation.transition_record_state(RecordState.ARCHIVED)
    reservation.transition_record_state(RecordState.PURGED)

    assert reservation.record_state == RecordState.PURGED


@pytest.mark.parametrize(
    "current, target",
    [(RecordState.ACTIVE, RecordState.PURGED), (RecordState.PURGED, RecordState.ACTIVE)],
)
def test_invalid_record_state_transitions(current, target):
    with pytest.raises(InvalidTransitionError):
        _reservation(record_state=current).transition_record_state(target)


def test_unknown_state_has_no_transitions():
    with pytest.raises(InvalidTransitionError):
        ensure_transition("status", ReservationStatus.TRANSITIONS, "legacy", ReservationStatus.CONFIRMED)
