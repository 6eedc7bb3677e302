# config.py
import os
from dotenv import load_dotenv
from sqlalchemy.engine import URL

load_dotenv()


def _env_flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def build_database_url():
    """Resolve the database URL from the environment.

    DATABASE_URL wins; otherwise a MySQL URL is assembled from the DB_* variables
    when DB_HOST is set, and a local SQLite file is used as the last resort.
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    host = os.getenv("DB_HOST")
    if host:
        return URL.create(
            "mysql+pymysql",
            username=os.getenv("DB_USER"),
            password=os.getenv("DB_PASSWORD"),
            host=host,
            port=int(os.getenv("DB_PORT", "3306")),
            database=os.getenv("DB_NAME"),
            query={"charset": "utf8mb4"},
        ).render_as_string(hide_password=False)

    return "sqlite:///oncall.db"


class Config:
    SQLALCHEMY_DATABASE_URI = build_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    AUTO_SETUP_DATABASE = _env_flag("AUTO_SETUP_DATABASE")
    CORS_ALLOW_ORIGIN = os.getenv("CORS_ALLOW_ORIGIN", "*")
