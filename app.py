# app.py
import logging

import click
from flask import Flask, request
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from appUtils import ApiError, MethodNotAllowedError, StorageError, ValidationError, send_error
from storageGateway import StorageGateway
from doctorService import DoctorService
from scheduleService import ScheduleService
from setupDatabase import setup_database


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY / ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_payload(with_query_id=False):
    """JSON body as a dict; an absent or unparsable body counts as empty."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    if with_query_id and payload.get("id") is None and request.args.get("id"):
        payload = {**payload, "id": request.args["id"]}
    return payload


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", _enable_sqlite_foreign_keys)
        if app.config["AUTO_SETUP_DATABASE"]:
            setup_database(StorageGateway(db.session))

    register_routes(app)
    register_error_handlers(app)
    register_commands(app)
    return app


def register_routes(app):
    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = app.config["CORS_ALLOW_ORIGIN"]
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return response

    @app.route("/api/doctors", methods=["GET", "POST", "PUT", "DELETE"])
    def doctors():
        service = DoctorService(StorageGateway(db.session))
        app.logger.debug(f"[doctors] {request.method} args={dict(request.args)}")

        if request.method == "GET":
            return service.get_doctors(request.args.get("id"))
        if request.method == "POST":
            return service.create_doctor(get_payload())
        if request.method == "PUT":
            return service.update_doctor(get_payload(with_query_id=True))
        return service.delete_doctor(get_payload(with_query_id=True))

    @app.route("/api/schedules", methods=["GET", "POST", "PUT", "DELETE"])
    def schedules():
        service = ScheduleService(StorageGateway(db.session))
        app.logger.debug(f"[schedules] {request.method} args={dict(request.args)}")

        if request.method == "GET":
            return service.list_schedules(
                date=request.args.get("date"),
                doctor_id=request.args.get("doctor_id"),
            )
        if request.method == "POST":
            return service.create_schedule(get_payload())
        if request.method == "PUT":
            return service.update_schedule(get_payload(with_query_id=True))
        return service.delete_schedule(get_payload(with_query_id=True))


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if isinstance(error, StorageError):
            app.logger.error(f"[api] {request.method} {request.path} - {error.message}: {error.detail}")
        else:
            app.logger.debug(f"[api] {request.method} {request.path} - {error.status_code} {error.message}")
        return send_error(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 405:
            response = handle_api_error(MethodNotAllowedError("Method not allowed"))
            allow = error.get_response().headers.get("Allow")
            if allow:
                response.headers["Allow"] = allow
            return response
        return send_error(error.name, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        app.logger.exception(f"[api] Unhandled error on {request.method} {request.path}: {error}")
        return send_error("Internal server error", 500)


def register_commands(app):
    @app.cli.command("setup-db")
    def setup_db_command():
        """Create the tables and seed the sample doctors."""
        inserted = setup_database(StorageGateway(db.session))
        click.echo(f"Database setup completed successfully ({inserted} sample doctor(s) inserted)")


if __name__ == "__main__":
    create_app().run(port=8000, debug=True)
