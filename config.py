import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "si", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret_key_change_me")

    # Offline-first: SQLite local
    DB_PATH = os.environ.get("DB_PATH", os.path.join(basedir, "inventario.db"))
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_DIR = os.environ.get("LOG_DIR", os.path.join(basedir, "logs"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_FILE = True

    # Inventario
    # Si es False, una venta que dejaría existencias negativas se rechaza completa.
    INVENTORY_ALLOW_NEGATIVE_STOCK = _env_bool("INVENTORY_ALLOW_NEGATIVE_STOCK", True)
    # Preferencia guardada; el motor solo implementa PROMEDIO (costo promedio ponderado).
    INVENTORY_COSTING_METHOD = os.environ.get("INVENTORY_COSTING_METHOD", "PROMEDIO").upper()


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_TO_FILE = False
