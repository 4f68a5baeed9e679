# backend/config.py
import os
from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Load .env from the same folder as config.py
load_dotenv(os.path.join(BASE_DIR, ".env"))


def mysql_uri():
    """Build a MySQL URL from the DB_* variables, or None when none are set."""
    parts = {
        "DB_USER": os.getenv("DB_USER"),
        "DB_PASSWORD": os.getenv("DB_PASSWORD"),
        "DB_HOST": os.getenv("DB_HOST"),
        "DB_PORT": os.getenv("DB_PORT"),
        "DB_NAME": os.getenv("DB_NAME"),
    }
    if not any(parts.values()):
        return None

    # host and port have usable defaults, credentials and schema don't
    parts["DB_HOST"] = parts["DB_HOST"] or "localhost"
    parts["DB_PORT"] = parts["DB_PORT"] or "3306"
    missing = [k for k, v in parts.items() if not v]
    if missing:
        raise ValueError(f"Missing database environment variables in .env: {', '.join(missing)}")

    return (
        f"mysql+pymysql://{parts['DB_USER']}:{parts['DB_PASSWORD']}"
        f"@{parts['DB_HOST']}:{parts['DB_PORT']}/{parts['DB_NAME']}"
    )


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "fallback_key")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # movie posters are referenced by file name and must already exist here
    IMAGES_DIR = os.getenv("IMAGES_DIR", os.path.join(BASE_DIR, "static", "images"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def database_uri(cls):
        if cls.SQLALCHEMY_DATABASE_URI:
            return cls.SQLALCHEMY_DATABASE_URI
        return mysql_uri() or "sqlite:///" + os.path.join(BASE_DIR, "movies.db")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    LOG_LEVEL = "DEBUG"
