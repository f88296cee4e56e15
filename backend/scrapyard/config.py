# backend/scrapyard/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Durable backing store for the collection records
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///scrapyard.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Subscription
    TRIAL_DAYS = int(os.environ.get("TRIAL_DAYS", "15"))
    PASSWORD_RESET_TTL_MINUTES = int(os.environ.get("PASSWORD_RESET_TTL_MINUTES", "60"))

    # "allow" keeps backorders possible, "reject" refuses a sell payment that
    # would take any product below zero.
    NEGATIVE_STOCK_POLICY = os.environ.get("NEGATIVE_STOCK_POLICY", "allow")

    # Automatic backups kept per scope; manual backups are never trimmed
    AUTO_BACKUP_RETENTION = int(os.environ.get("AUTO_BACKUP_RETENTION", "5"))

    # Seed data written the first time an empty store is loaded
    PLATFORM_ADMIN_NAME = os.environ.get("PLATFORM_ADMIN_NAME", "Platform Admin")
    PLATFORM_ADMIN_EMAIL = os.environ.get("PLATFORM_ADMIN_EMAIL", "admin@scrapyard.local")
    PLATFORM_ADMIN_PASSWORD = os.environ.get("PLATFORM_ADMIN_PASSWORD", "change-me-now")
    SEED_DEMO_COMPANY = _env_bool("SEED_DEMO_COMPANY", False)
    DEMO_OWNER_EMAIL = os.environ.get("DEMO_OWNER_EMAIL", "owner@demo.scrapyard.local")
    DEMO_OWNER_PASSWORD = os.environ.get("DEMO_OWNER_PASSWORD", "demo-owner")
