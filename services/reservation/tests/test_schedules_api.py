from uuid import uuid4

from reservation_testkit import TOMORROW, at
from shared import format_hour


def _availability(client, salon, **params):
    params.setdefault("date", TOMORROW.isoformat())
    return client.get(f"/orgs/{salon.org_id}/availability", params=params, headers=salon.admin)


def _labels(resp):
    assert resp.status_code == 200, resp.text
    return [slot["start_time"] for slot in resp.json()["slots"]]


def test_availability_excludes_staff_booking(client, salon):
    staff_id = uuid4()
    created = client.post(
        "/reservations/",
        json={
            "tenant_id": salon.tenant_id,
            "org_id": salon.org_id,
            "staff_id": str(staff_id),
            "start_time_unix": at(TOMORROW, "10:00"),
            "end_time_unix": at(TOMORROW, "11:00"),
        },
        headers=salon.admin,
    )
    assert created.status_code == 201

    resp = _availability(client, salon, duration_minutes=30, staff_id=str(staff_id))

    expected = ["09:00", "09:30"] + [format_hour(minute) for minute in range(11 * 60, 17 * 60 + 31, 30)]
    assert _labels(resp) == expected
    body = resp.json()
    assert body["duration_minutes"] == 30
    assert body["staff_id"] == str(staff_id)
    assert body["slots"][0]["start_time_unix"] == at(TOMORROW, "09:00")
    assert body["slots"][0]["end_time_unix"] == at(TOMORROW, "09:30")


def test_holiday_exception_closes_the_day(client, salon):
    resp = client.post(
        f"/orgs/{salon.org_id}/exceptions",
        json={"date": TOMORROW.isoformat(), "type": "holiday", "notes": "Feriado"},
        headers=salon.admin,
    )
    assert resp.status_code == 201

    assert _labels(_availability(client, salon, duration_minutes=30)) == []

    exception_id = resp.json()["id"]
    archived = client.delete(f"/orgs/{salon.org_id}/exceptions/{exception_id}", headers=salon.admin)
    assert archived.status_code == 204
    assert _labels(_availability(client, salon, duration_minutes=30)) != []


def test_special_hours_exception(client, salon):
    resp = client.post(
        f"/orgs/{salon.org_id}/exceptions",
        json={"date": TOMORROW.isoformat(), "type": "special_hours", "open_time": "13:00", "close_time": "15:00"},
        headers=salon.admin,
    )
    assert resp.status_code == 201

    assert _labels(_availability(client, salon, duration_minutes=60)) == ["13:00", "13:30", "14:00"]


def test_special_hours_require_times(client, salon):
    resp = client.post(
        f"/orgs/{salon.org_id}/exceptions",
        json={"date": TOMORROW.isoformat(), "type": "special_hours"},
        headers=salon.admin,
    )
    assert resp.status_code == 422


def test_staff_absence_and_partial_schedule(client, salon):
    absent, partial = uuid4(), uuid4()
    resp = client.post(
        f"/orgs/{salon.org_id}/staff/{absent}/schedules",
        json={"date": TOMORROW.isoformat(), "type": "absent", "is_all_day": True},
        headers=salon.admin,
    )
    assert resp.status_code == 201
    resp = client.post(
        f"/orgs/{salon.org_id}/staff/{partial}/schedules",
        json={
            "date": TOMORROW.isoformat(),
            "type": "absent",
            "is_all_day": False,
            "start_time_unix": at(TOMORROW, "09:00"),
            "end_time_unix": at(TOMORROW, "12:00"),
        },
        headers=salon.admin,
    )
    assert resp.status_code == 201

    assert _labels(_availability(client, salon, duration_minutes=30, staff_id=str(absent))) == []
    assert _labels(_availability(client, salon, duration_minutes=30, staff_id=str(partial)))[0] == "12:00"

    listed = client.get(f"/orgs/{salon.org_id}/staff/{partial}/schedules", headers=salon.admin)
    assert [item["is_all_day"] for item in listed.json()] == [False]


def test_partial_staff_schedule_requires_range(client, salon):
    resp = client.post(
        f"/orgs/{salon.org_id}/staff/{uuid4()}/schedules",
        json={"date": TOMORROW.isoformat(), "type": "absent", "is_all_day": False},
        headers=salon.admin,
    )
    assert resp.status_code == 422


def test_staff_week_schedule_narrows_availability(client, salon):
    staff_id = uuid4()
    resp = client.put(
        f"/orgs/{salon.org_id}/staff/{staff_id}/week-schedule/Tuesday",
        json={"is_open": True, "open_time": "14:00", "close_time": "16:00"},
        headers=salon.admin,
    )
    assert resp.status_code == 200
    assert resp.json()["day_of_week"] == "tuesday"

    labels = _labels(_availability(client, salon, duration_minutes=30, staff_id=str(staff_id)))

    assert labels == ["14:00", "14:30", "15:00", "15:30"]


def test_duration_from_menus(client, salon):
    menu = client.post(
        f"/orgs/{salon.org_id}/menus",
        json={"name": "Coloração", "unit_price": 8000, "time_to_min": 120},
        headers=salon.admin,
    ).json()

    resp = client.get(
        f"/orgs/{salon.org_id}/availability",
        params={"date": TOMORROW.isoformat(), "menu_ids": [menu["id"]]},
        headers=salon.admin,
    )

    assert resp.json()["duration_minutes"] == 120
    assert _labels(resp)[-1] == "16:00"


def test_duration_or_menus_required(client, salon):
    assert _availability(client, salon).status_code == 400


def test_availability_without_configuration(client, salon):
    resp = client.get(
        f"/orgs/{uuid4()}/availability",
        params={"date": TOMORROW.isoformat(), "duration_minutes": 30},
        headers=salon.admin,
    )
    assert resp.status_code == 400


def test_week_schedule_validation(client, salon, auth_headers):
    url = f"/orgs/{salon.org_id}/week-schedule"

    assert client.put(f"{url}/someday", json={"is_open": False}, headers=salon.admin).status_code == 400
    inverted = {"is_open": True, "open_time": "18:00", "close_time": "09:00"}
    assert client.put(f"{url}/monday", json=inverted, headers=salon.admin).status_code == 422
    assert client.put(f"{url}/monday", json={"is_open": True}, headers=salon.admin).status_code == 422

    staff = auth_headers(salon.tenant_id, role="staff")
    assert client.put(f"{url}/monday", json={"is_open": False}, headers=staff).status_code == 403

    listed = client.get(url, headers=staff)
    assert listed.status_code == 200
    assert len(listed.json()) == 7


def test_closing_a_weekday(client, salon):
    client.put(f"/orgs/{salon.org_id}/week-schedule/tuesday", json={"is_open": False}, headers=salon.admin)

    assert _labels(_availability(client, salon, duration_minutes=30)) == []


def test_reservation_config_roundtrip(client, salon):
    resp = client.get(f"/orgs/{salon.org_id}/reservation-config", headers=salon.admin)
    assert resp.status_code == 200
    assert resp.json()["available_sheet"] == 2

    updated = client.put(
        f"/orgs/{salon.org_id}/reservation-config",
        json={"timezone": "Asia/Tokyo", "reservation_interval_minutes": 60, "available_sheet": 4},
        headers=salon.admin,
    )
    assert updated.status_code == 200
    assert updated.json()["reservation_interval_minutes"] == 60

    labels = _labels(_availability(client, salon, duration_minutes=60))
    assert labels == [format_hour(minute) for minute in range(9 * 60, 17 * 60 + 1, 60)]

    assert client.get(f"/orgs/{uuid4()}/reservation-config", headers=salon.admin).status_code == 404


def test_reservation_config_validation(client, salon):
    url = f"/orgs/{salon.org_id}/reservation-config"

    assert client.put(url, json={"reservation_interval_minutes": 7}, headers=salon.admin).status_code == 422
    assert client.put(url, json={"timezone": "Mars/Olympus"}, headers=salon.admin).status_code == 422
    assert client.put(url, json={"available_sheet": 0}, headers=salon.admin).status_code == 422
