from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi import status

from reservation_testkit import TODAY, TOMORROW, at


def _payload(salon, staff_id, start, end=None, **extra):
    body = {
        "tenant_id": salon.tenant_id,
        "org_id": salon.org_id,
        "staff_id": str(staff_id),
        "customer_name": "Hanako",
        "start_time_unix": start,
        **extra,
    }
    if end is not None:
        body["end_time_unix"] = end
    return body


def _create(client, salon, staff_id, start, end=None, headers=None, **extra):
    return client.post(
        "/reservations/",
        json=_payload(salon, staff_id, start, end, **extra),
        headers=headers or salon.admin,
    )


def test_reservation_lifecycle(client, salon):
    staff_id = uuid4()

    create_resp = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))
    assert create_resp.status_code == status.HTTP_201_CREATED, create_resp.text
    created = create_resp.json()
    assert created["status"] == "pending"
    assert created["record_state"] == "active"
    assert created["payment_status"] == "unpaid"
    reservation_id = created["id"]

    get_resp = client.get(f"/reservations/{reservation_id}", headers=salon.admin)
    assert get_resp.status_code == 200
    assert get_resp.json()["start_time_unix"] == at(TOMORROW, "10:00")

    confirm_resp = client.patch(
        f"/reservations/{reservation_id}/status",
        json={"status": "confirmed", "payment_status": "paid"},
        headers=salon.admin,
    )
    assert confirm_resp.status_code == 200
    assert confirm_resp.json()["status"] == "confirmed"
    assert confirm_resp.json()["payment_status"] == "paid"

    list_resp = client.get(
        "/reservations/",
        params={"tenant_id": salon.tenant_id, "org_id": salon.org_id, "date": TOMORROW.isoformat()},
        headers=salon.admin,
    )
    assert list_resp.status_code == 200
    items = list_resp.json()
    assert [item["id"] for item in items] == [reservation_id]
    assert items[0]["can_cancel"] is True

    cancel_resp = client.patch(
        f"/reservations/{reservation_id}/cancel",
        json={"reason": "Cliente pediu"},
        headers=salon.admin,
    )
    assert cancel_resp.status_code == 200
    assert cancel_resp.json()["status"] == "canceled"
    assert cancel_resp.json()["cancellation_reason"] == "Cliente pediu"


def test_overlapping_staff_reservation_returns_409(client, salon):
    staff_id = uuid4()
    first = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()

    conflict = _create(client, salon, staff_id, at(TOMORROW, "10:30"), at(TOMORROW, "11:30"))

    assert conflict.status_code == status.HTTP_409_CONFLICT
    body = conflict.json()
    assert body["success"] is False
    assert body["error"] == "conflict"
    assert body["message"] == "O profissional já possui uma reserva neste horário."
    assert [item["reservation_id"] for item in body["conflicts"]] == [first["id"]]

    back_to_back = _create(client, salon, staff_id, at(TOMORROW, "11:00"), at(TOMORROW, "12:00"))
    assert back_to_back.status_code == status.HTTP_201_CREATED


def test_seat_capacity_returns_409(client, salon):
    for _ in range(2):
        resp = _create(client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))
        assert resp.status_code == 201

    third = _create(client, salon, uuid4(), at(TOMORROW, "10:30"), at(TOMORROW, "11:00"))

    assert third.status_code == 409
    assert third.json()["message"] == "Não há cadeiras disponíveis neste horário."


def test_canceled_reservation_frees_the_slot(client, salon):
    staff_id = uuid4()
    first = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()
    client.patch(f"/reservations/{first['id']}/cancel", json={}, headers=salon.admin)

    again = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    assert again.status_code == 201


def test_reschedule_checks_conflicts_excluding_itself(client, salon):
    staff_id = uuid4()
    morning = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()
    noon = _create(client, salon, staff_id, at(TOMORROW, "12:00"), at(TOMORROW, "13:00")).json()

    clash = client.patch(
        f"/reservations/{noon['id']}/reschedule",
        json={"start_time_unix": at(TOMORROW, "10:30"), "end_time_unix": at(TOMORROW, "11:30")},
        headers=salon.admin,
    )
    assert clash.status_code == 409

    shifted = client.patch(
        f"/reservations/{morning['id']}/reschedule",
        json={"start_time_unix": at(TOMORROW, "10:30"), "end_time_unix": at(TOMORROW, "11:30")},
        headers=salon.admin,
    )
    assert shifted.status_code == 200
    assert shifted.json()["start_time_unix"] == at(TOMORROW, "10:30")

    other_staff = uuid4()
    moved = client.patch(
        f"/reservations/{noon['id']}/reschedule",
        json={
            "start_time_unix": at(TOMORROW, "10:30"),
            "end_time_unix": at(TOMORROW, "11:30"),
            "staff_id": str(other_staff),
        },
        headers=salon.admin,
    )
    assert moved.status_code == 200
    assert moved.json()["staff_id"] == str(other_staff)


def test_completed_reservation_cannot_be_canceled(client, salon):
    reservation = _create(
        client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"), status="confirmed"
    ).json()
    client.patch(f"/reservations/{reservation['id']}/status", json={"status": "completed"}, headers=salon.admin)

    resp = client.patch(f"/reservations/{reservation['id']}/cancel", json={}, headers=salon.admin)

    assert resp.status_code == 400
    assert "completed -> canceled" in resp.json()["detail"]


def test_status_cannot_move_backwards(client, salon):
    reservation = _create(
        client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"), status="confirmed"
    ).json()

    resp = client.patch(f"/reservations/{reservation['id']}/status", json={"status": "pending"}, headers=salon.admin)

    assert resp.status_code == 400


def test_status_endpoint_rejects_cancel(client, salon):
    reservation = _create(client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()

    resp = client.patch(f"/reservations/{reservation['id']}/status", json={"status": "canceled"}, headers=salon.admin)

    assert resp.status_code == 400


def test_customer_cancellation_window(client, salon, auth_headers):
    customer_id = uuid4()
    customer = auth_headers(salon.tenant_id, role="customer", user_id=customer_id)
    reservation = _create(
        client,
        salon,
        uuid4(),
        at(TODAY, "15:00"),
        at(TODAY, "16:00"),
        headers=customer,
        customer_id=str(customer_id),
    )
    assert reservation.status_code == 201
    reservation_id = reservation.json()["id"]

    listed = client.get("/reservations/", params={"tenant_id": salon.tenant_id}, headers=customer).json()
    assert [item["can_cancel"] for item in listed] == [False]

    denied = client.patch(f"/reservations/{reservation_id}/cancel", json={}, headers=customer)
    assert denied.status_code == 400

    # Admin cancela fora da janela
    allowed = client.patch(f"/reservations/{reservation_id}/cancel", json={}, headers=salon.admin)
    assert allowed.status_code == 200


def test_customer_only_sees_own_reservations(client, salon, auth_headers):
    owner_id = uuid4()
    owner = auth_headers(salon.tenant_id, role="customer", user_id=owner_id)
    stranger = auth_headers(salon.tenant_id, role="customer")

    for_other = _create(
        client,
        salon,
        uuid4(),
        at(TOMORROW, "10:00"),
        at(TOMORROW, "11:00"),
        headers=owner,
        customer_id=str(uuid4()),
    )
    assert for_other.status_code == 403

    mine = _create(
        client,
        salon,
        uuid4(),
        at(TOMORROW, "10:00"),
        at(TOMORROW, "11:00"),
        headers=owner,
        customer_id=str(owner_id),
    ).json()

    assert client.get(f"/reservations/{mine['id']}", headers=owner).status_code == 200
    assert client.get(f"/reservations/{mine['id']}", headers=stranger).status_code == 403
    assert client.get("/reservations/", params={"tenant_id": salon.tenant_id}, headers=stranger).json() == []


def test_other_tenant_is_forbidden(client, salon, auth_headers):
    intruder = auth_headers(uuid4(), role="admin")

    resp = _create(client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"), headers=intruder)

    assert resp.status_code == 403


def test_missing_or_invalid_token(client, salon):
    payload = _payload(salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    assert client.post("/reservations/", json=payload).status_code == 401
    assert (
        client.post("/reservations/", json=payload, headers={"Authorization": "Bearer garbage"}).status_code == 401
    )


def test_invalid_interval_is_rejected(client, salon):
    resp = _create(client, salon, uuid4(), at(TOMORROW, "11:00"), at(TOMORROW, "10:00"))
    assert resp.status_code == 422

    no_end = _create(client, salon, uuid4(), at(TOMORROW, "11:00"))
    assert no_end.status_code == 422


def test_org_without_configuration(client, auth_headers):
    tenant_id = uuid4()
    resp = client.post(
        "/reservations/",
        json={
            "tenant_id": str(tenant_id),
            "org_id": str(uuid4()),
            "staff_id": str(uuid4()),
            "start_time_unix": at(TOMORROW, "10:00"),
            "end_time_unix": at(TOMORROW, "11:00"),
        },
        headers=auth_headers(tenant_id),
    )

    assert resp.status_code == 400
    assert "Configuração de reservas ausente" in resp.json()["detail"]


def test_end_time_derived_from_menus(client, salon):
    menu_resp = client.post(
        f"/orgs/{salon.org_id}/menus",
        json={
            "name": "Corte + escova",
            "unit_price": 5000,
            "sale_price": 4000,
            "time_to_min": 45,
            "ensure_time_to_min": 60,
        },
        headers=salon.admin,
    )
    assert menu_resp.status_code == 201
    menu = menu_resp.json()
    assert menu["effective_duration"] == 60

    resp = _create(client, salon, uuid4(), at(TOMORROW, "10:00"), menu_ids=[menu["id"]])

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["end_time_unix"] == at(TOMORROW, "11:00")
    assert body["total_price"] == 4000
    assert body["menus"][0]["name"] == "Corte + escova"

    unknown = _create(client, salon, uuid4(), at(TOMORROW, "14:00"), menu_ids=[str(uuid4())])
    assert unknown.status_code == 404


def test_archive_restore_and_purge(client, salon):
    staff_id = uuid4()
    reservation = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()
    url = f"/reservations/{reservation['id']}"
    params = {"tenant_id": salon.tenant_id, "org_id": salon.org_id}

    assert client.delete(url, headers=salon.admin).status_code == 204
    assert client.get("/reservations/", params=params, headers=salon.admin).json() == []
    archived = client.get("/reservations/", params={**params, "include_archived": True}, headers=salon.admin).json()
    assert [item["record_state"] for item in archived] == ["archived"]

    restored = client.post(f"{url}/restore", headers=salon.admin)
    assert restored.status_code == 200
    assert restored.json()["record_state"] == "active"

    # Purga só a partir de arquivada
    assert client.delete(url, params={"purge": True}, headers=salon.admin).status_code == 400
    client.delete(url, headers=salon.admin)
    assert client.delete(url, params={"purge": True}, headers=salon.admin).status_code == 204
    assert client.get(url, headers=salon.admin).status_code == 404


def test_restore_rechecks_conflicts(client, salon):
    staff_id = uuid4()
    original = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()
    client.delete(f"/reservations/{original['id']}", headers=salon.admin)

    # Arquivada não ocupa horário
    replacement = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))
    assert replacement.status_code == 201

    restore = client.post(f"/reservations/{original['id']}/restore", headers=salon.admin)
    assert restore.status_code == 409


def test_staff_role_cannot_purge(client, salon, auth_headers):
    staff = auth_headers(salon.tenant_id, role="staff")
    reservation = _create(client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()
    url = f"/reservations/{reservation['id']}"

    assert client.delete(url, headers=staff).status_code == 204
    assert client.delete(url, params={"purge": True}, headers=staff).status_code == 403


@pytest.mark.parametrize(
    "day, start, end",
    [
        (TODAY - timedelta(days=1), "10:00", "11:00"),
        (TODAY + timedelta(days=90), "10:00", "11:00"),
        (TOMORROW, "03:00", "04:00"),
        (TOMORROW, "17:30", "18:30"),
        (TODAY, "09:00", "09:30"),
        (TOMORROW, "10:10", "11:10"),
    ],
)
def test_booking_outside_offered_slots_is_rejected(client, salon, day, start, end):
    resp = _create(client, salon, uuid4(), at(day, start), at(day, end))

    assert resp.status_code == 400, resp.text
    listed = client.get("/reservations/", params={"tenant_id": salon.tenant_id}, headers=salon.admin)
    assert listed.json() == []


def test_booking_on_holiday_is_rejected(client, salon):
    client.post(
        f"/orgs/{salon.org_id}/exceptions",
        json={"date": TOMORROW.isoformat(), "type": "holiday"},
        headers=salon.admin,
    )

    resp = _create(client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    assert resp.status_code == 400
    assert "não atende" in resp.json()["detail"]


def test_booking_absent_staff_is_rejected(client, salon):
    staff_id = uuid4()
    client.post(
        f"/orgs/{salon.org_id}/staff/{staff_id}/schedules",
        json={"date": TOMORROW.isoformat(), "type": "absent", "is_all_day": True},
        headers=salon.admin,
    )

    resp = _create(client, salon, staff_id, at(TOMORROW, "10:00"), at(TOMORROW, "11:00"))

    assert resp.status_code == 400
    assert "profissional" in resp.json()["detail"]
    assert _create(client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).status_code == 201


def test_booking_respects_same_day_lead_time(client, salon, frozen_clock):
    assert _create(client, salon, uuid4(), at(TODAY, "09:30"), at(TODAY, "10:00")).status_code == 201

    frozen_clock.advance(minutes=10)

    assert _create(client, salon, uuid4(), at(TODAY, "09:30"), at(TODAY, "10:00")).status_code == 400


def test_reschedule_outside_opening_hours_is_rejected(client, salon):
    reservation = _create(client, salon, uuid4(), at(TOMORROW, "10:00"), at(TOMORROW, "11:00")).json()

    late = client.patch(
        f"/reservations/{reservation['id']}/reschedule",
        json={"start_time_unix": at(TOMORROW, "18:00"), "end_time_unix": at(TOMORROW, "19:00")},
        headers=salon.admin,
    )
    assert late.status_code == 400

    yesterday = TODAY - timedelta(days=1)
    past = client.patch(
        f"/reservations/{reservation['id']}/reschedule",
        json={"start_time_unix": at(yesterday, "10:00"), "end_time_unix": at(yesterday, "11:00")},
        headers=salon.admin,
    )
    assert past.status_code == 400

    unchanged = client.get(f"/reservations/{reservation['id']}", headers=salon.admin).json()
    assert unchanged["start_time_unix"] == at(TOMORROW, "10:00")
