from models import db
from storageGateway import StorageGateway
from setupDatabase import setup_database


def test_setup_database_seeds_sample_doctors(app, client):
    with app.app_context():
        assert setup_database(StorageGateway(db.session)) == 3

    doctors = client.get("/api/doctors").get_json()["data"]
    assert [d["name"] for d in doctors] == ["Dr. Johnson", "Dr. Smith", "Dr. Williams"]
    williams = doctors[2]
    assert williams["specialty"] == "Surgery"
    assert williams["work_days"] == [2, 3, 4, 5, 6]
    assert williams["shift_start"] == "07:00:00"
    assert williams["shift_end"] == "18:00:00"
    assert williams["leave_days"] == []
    assert williams["is_on_mandatory_rest"] is False


def test_setup_database_is_idempotent(app, client):
    with app.app_context():
        setup_database(StorageGateway(db.session))
        assert setup_database(StorageGateway(db.session)) == 0

    assert len(client.get("/api/doctors").get_json()["data"]) == 3


def test_setup_db_command(app):
    result = app.test_cli_runner().invoke(args=["setup-db"])

    assert result.exit_code == 0
    assert "3 sample doctor(s) inserted" in result.output
