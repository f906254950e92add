import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

ADMIN_AUTH_SOURCES = ("stored", "env")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self, **overrides):
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quizmaster.db")
        self.SESSION_SECRET = os.getenv("SESSION_SECRET", "quizmaster_secret_key_change_me")

        # Admin credentials are provisioned out of band
        self.ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
        self.ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")
        self.ADMIN_AUTH_SOURCE = os.getenv("ADMIN_AUTH_SOURCE", "stored").strip().lower()

        self.SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", "true")
        self.TICK_INTERVAL = float(os.getenv("TICK_INTERVAL", 1.0))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        for key, value in overrides.items():
            setattr(self, key, value)

        if self.ADMIN_AUTH_SOURCE not in ADMIN_AUTH_SOURCES:
            raise ValueError(
                f"ADMIN_AUTH_SOURCE must be one of {ADMIN_AUTH_SOURCES}, got {self.ADMIN_AUTH_SOURCE!r}"
            )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
