import pytest

from app import create_app
from models import db


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "AUTO_SETUP_DATABASE": False,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def doctor_payload():
    return {
        "name": "Dr. Lee",
        "specialty": "Cardiology",
        "work_days": [1, 3, 5],
        "shift_start": "09:00:00",
        "shift_end": "15:00:00",
    }


@pytest.fixture
def create_doctor(client, doctor_payload):
    def _create(**overrides):
        response = client.post("/api/doctors", json={**doctor_payload, **overrides})
        assert response.status_code == 201, response.get_json()
        return response.get_json()["data"]["id"]
    return _create
