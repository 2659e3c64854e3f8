import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class BaseApplicationSettings:
    """Base Flask application configuration populated from the environment."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    db_uri = os.environ.get("DATABASE_URI", "sqlite://")
    SQLALCHEMY_DATABASE_URI = db_uri

    # Internationalisation
    LANGUAGES = ["en", "ja"]
    BABEL_TRANSLATION_DIRECTORIES = os.path.join(
        os.path.dirname(__file__), "translations"
    )
    BABEL_DEFAULT_LOCALE = os.environ.get("BABEL_DEFAULT_LOCALE", "ja")
    BABEL_DEFAULT_TIMEZONE = os.environ.get("BABEL_DEFAULT_TIMEZONE", "UTC")

    # Database stability
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }

    if not db_uri.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS.update({
            "pool_size": 10,
            "max_overflow": 20,
        })
        if db_uri.startswith("mysql"):
            SQLALCHEMY_ENGINE_OPTIONS["connect_args"] = {"connect_timeout": 10}

    # OpenAPI
    API_TITLE = "Wiki Change Tracking API"
    API_VERSION = "1.0.0"
    OPENAPI_VERSION = "3.0.3"
    OPENAPI_URL_PREFIX = "/api"
    OPENAPI_JSON_PATH = "openapi.json"
    OPENAPI_SWAGGER_UI_PATH = "docs"
    OPENAPI_SWAGGER_UI_URL = "https://cdn.jsdelivr.net/npm/swagger-ui-dist/"

    # Wiki merge
    WIKI_CAS_STRATEGY = os.environ.get("WIKI_CAS_STRATEGY", "conditional_update")
    WIKI_RECORD_DELTA = _env_bool("WIKI_RECORD_DELTA")
    WIKI_DEFAULT_PAGE_SIZE = _env_int("WIKI_DEFAULT_PAGE_SIZE", 20)
    WIKI_MAX_PAGE_SIZE = _env_int("WIKI_MAX_PAGE_SIZE", 100)

    # Logging
    DB_LOGGING_ENABLED = _env_bool("DB_LOGGING_ENABLED")


class Config(BaseApplicationSettings):
    pass


class TestConfig(BaseApplicationSettings):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    DB_LOGGING_ENABLED = False
