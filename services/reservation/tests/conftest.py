import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt

SERVICE_DIR = Path(__file__).resolve().parents[1]
ROOT_DIR = SERVICE_DIR.parent.parent

service_path = str(SERVICE_DIR)
shared_path = str(ROOT_DIR / "services")
for path in (service_path, shared_path):
    if path in sys.path:
        sys.path.remove(path)
    sys.path.insert(0, path)

for module_name in list(sys.modules):
    if module_name == "app" or module_name.startswith("app."):
        sys.modules.pop(module_name)

os.environ["RESERVATION_DATABASE_URL"] = f"sqlite:///{SERVICE_DIR / 'test_reservation.db'}"
os.environ["ANALYTICS_DATABASE_URL"] = f"sqlite:///{SERVICE_DIR / 'test_analytics.db'}"
os.environ["REDIS_URL"] = ""
os.environ["EVENT_STREAM"] = "test-stream"
os.environ["SECRET_KEY"] = "ci-test-secret-for-reservation-service-0123456789"
os.environ["JWT_ALGORITHM"] = "HS512"

from app.main import app  # noqa: E402
from app.core.database import Base, analytics_engine, analytics_metadata, engine  # noqa: E402
from app.services.schedule_reader import OpeningHours  # noqa: E402
from reservation_testkit import NOW, TIMEZONE, InMemoryScheduleReader  # noqa: E402
from shared import WEEKDAY_KEYS, FrozenClock, build_policy  # noqa: E402


@pytest.fixture
def frozen_clock():
    return FrozenClock(NOW)


@pytest.fixture
def memory_reader():
    reader = InMemoryScheduleReader(
        build_policy(
            {
                "timezone": TIMEZONE,
                "reservation_interval_minutes": 30,
                "reservation_limit_days": 30,
                "available_cancel_days": 1,
                "available_sheet": 2,
                "today_first_later_minutes": 30,
            }
        )
    )
    for day_key in WEEKDAY_KEYS:
        reader.week[day_key] = OpeningHours(is_open=True, open_time="09:00", close_time="18:00")
    return reader


@pytest.fixture(autouse=True)
def prepare_database():
    Base.metadata.drop_all(bind=engine)
    analytics_metadata.drop_all(bind=analytics_engine)
    Base.metadata.create_all(bind=engine)
    analytics_metadata.create_all(bind=analytics_engine)
    yield
    Base.metadata.drop_all(bind=engine)
    analytics_metadata.drop_all(bind=analytics_engine)


@pytest.fixture
def auth_headers():
    """Gera o header Authorization com um JWT compatível com get_current_token."""

    def _make(tenant_id, role: str = "admin", user_id=None):
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        payload = {
            "sub": str(user_id or uuid4()),
            "tenant_id": str(tenant_id),
            "role": role,
            "exp": int(exp.timestamp()),
        }
        token = jwt.encode(payload, os.environ["SECRET_KEY"], algorithm=os.environ["JWT_ALGORITHM"])
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def client(frozen_clock):
    app.state.event_publisher = None
    app.state.cache = None
    app.state.clock = frozen_clock
    app.state.staff_service_url = None
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def salon(client, auth_headers):
    """Org configurada: Tóquio, passo de 30 min, 2 cadeiras, aberto 09:00-18:00 todos os dias."""
    tenant_id, org_id = uuid4(), uuid4()
    admin = auth_headers(tenant_id, role="admin")

    resp = client.put(
        f"/orgs/{org_id}/reservation-config",
        json={
            "timezone": TIMEZONE,
            "reservation_interval_minutes": 30,
            "reservation_limit_days": 30,
            "available_cancel_days": 1,
            "available_sheet": 2,
            "today_first_later_minutes": 30,
        },
        headers=admin,
    )
    assert resp.status_code == 200, resp.text

    for day_key in WEEKDAY_KEYS:
        resp = client.put(
            f"/orgs/{org_id}/week-schedule/{day_key}",
            json={"is_open": True, "open_time": "09:00", "close_time": "18:00"},
            headers=admin,
        )
        assert resp.status_code == 200, resp.text

    return SimpleNamespace(tenant_id=str(tenant_id), org_id=str(org_id), admin=admin)
