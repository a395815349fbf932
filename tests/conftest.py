from datetime import date

import pytest

from payaso import create_app
from payaso.extensions import db
from payaso.services import get_service

DEMO_PASSWORD = "payaso123"

ADMIN = "ana.admin@payaso.org"
DR_PAYASO = "dr.risas@payaso.org"
RECRUIT = "pepito.recluta@payaso.org"
PHOTOGRAPHER = "foto.carla@payaso.org"
FOUNDER = "dr.chiflado@payaso.org"


@pytest.fixture(params=["memory", "sql"])
def app(request):
    app = create_app("testing", {"DATA_BACKEND": request.param})
    with app.app_context():
        if request.param == "sql":
            db.create_all()
            get_service().load_demo(date.today())
        else:
            get_service().reset()
        yield app
        if request.param == "sql":
            db.session.remove()
            db.drop_all()


@pytest.fixture
def memory_app():
    app = create_app("testing", {"DATA_BACKEND": "memory"})
    with app.app_context():
        yield app


@pytest.fixture
def service(app):
    return get_service()


@pytest.fixture
def client(app):
    return app.test_client(use_cookies=False)


def user_id(email):
    return next(u.id for u in get_service().list_users() if u.email == email)


def event_id(title):
    return next(e.id for e in get_service().list_events() if e.title == title)


def login(client, email, password=DEMO_PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return {"Authorization": f"Bearer {response.get_json()['access_token']}"}


@pytest.fixture
def as_user(client):
    """Return auth headers for the demo account with the given email."""
    def _login(email):
        return login(client, email)
    return _login
