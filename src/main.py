"""Trail directory service application entrypoint."""
from __future__ import annotations

import logging

from flask import Flask

from src.config import get_config
from src.database import init_engine
from src.routes import register_blueprints
from src.routes.dependencies import cleanup_services
from src.routes.utils import error_response
from src.services.errors import DirectoryError, ValidationError

logger = logging.getLogger(__name__)

app = Flask(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> Flask:
    configure_logging(get_config().log_level)
    init_engine()
    register_blueprints(app)
    app.teardown_appcontext(cleanup_services)
    register_error_handlers(app)
    return app


@app.get("/health")
def health():
    return {"status": "ok", "service": "trail-directory"}


def register_error_handlers(flask_app: Flask) -> None:
    @flask_app.errorhandler(DirectoryError)
    def handle_directory_error(exc: DirectoryError):
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.message)
        details = exc.errors if isinstance(exc, ValidationError) else None
        return error_response(exc.status_code, exc.message, details)

    @flask_app.errorhandler(404)
    def handle_404(e):
        return error_response(404, "Ressource introuvable.")

    @flask_app.errorhandler(405)
    def handle_405(e):
        return error_response(405, "Méthode non autorisée pour cette ressource.")

    @flask_app.errorhandler(500)
    def handle_500(e):
        return error_response(500, "Erreur interne. On respire, on relance.")


create_app()


if __name__ == "__main__":
    app.run(debug=True, port=5004)
