# --- aquaroom/config.py ---
import os
import tempfile
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration, read from the environment."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    AUTO_CREATE_TABLES = os.environ.get("AUTO_CREATE_TABLES", "true").lower() == "true"

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Uploads / object storage
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "local")  # "local" | "supabase"
    UPLOAD_FOLDER = os.environ.get(
        "UPLOAD_FOLDER",
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "uploads"),
    )
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    SUPABASE_BUCKET = os.environ.get("SUPABASE_BUCKET")
    MAX_UPLOAD_SIZE = 5 * 1024 * 1024
    MAX_ICON_SIZE = 1024 * 1024
    MAX_CONTENT_LENGTH = 20 * 1024 * 1024

    ADMIN_STATIC_DIR = os.environ.get("ADMIN_STATIC_DIR")

    # Inventory
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", 10))
    DEFAULT_MIN_STOCK = int(os.environ.get("DEFAULT_MIN_STOCK", 5))

    CURRENCY = "THB"

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'aquaroom.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


class TestingConfig(Config):
    TESTING = True
    AUTO_CREATE_TABLES = True
    STORAGE_BACKEND = "local"
    UPLOAD_FOLDER = os.path.join(tempfile.gettempdir(), "aquaroom-test-uploads")
    LOG_LEVEL = "WARNING"

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
