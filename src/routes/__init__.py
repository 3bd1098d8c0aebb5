"""Blueprint registration helpers."""
from __future__ import annotations

from flask import Flask

from src.services.resources import RESOURCE_TYPES

from .moderated import build_blueprint

__all__ = ["register_blueprints"]


def register_blueprints(app: Flask) -> None:
    for resource in RESOURCE_TYPES:
        app.register_blueprint(build_blueprint(resource))
