# Overview: Flask extension instances for the backing database and migrations.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def get_store():
    """The ScrapyardStore owned by the current app (see create_app)."""
    return current_app.extensions["scrapyard"]
