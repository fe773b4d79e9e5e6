"""
Application factory for SpotiCue.

Builds the Flask JSON API around a ServiceManager. The factory does not
own process lifetime: ``run.py`` (or the ``spoticue`` console script)
starts the server and shuts the scheduler down on exit.
"""

from __future__ import annotations

import os
import time
from typing import Optional

from flask import Flask, Response, g, request
from flask_compress import Compress

from .routes import health_bp, music_bp, schedules_bp
from .routes.errors import register_error_handlers
from .services.service_manager import ServiceManager, get_service_manager, set_service_manager
from .utils.logger import setup_logger
from .version import VERSION


def _configure_compression(app: Flask) -> None:
    app.config.setdefault('COMPRESS_REGISTER', True)
    app.config.setdefault('COMPRESS_ALGORITHM', os.getenv('SPOTICUE_COMPRESS_ALGO', 'gzip'))
    app.config.setdefault('COMPRESS_MIMETYPES', ('application/json',))
    try:
        app.config['COMPRESS_MIN_SIZE'] = max(256, int(os.getenv('SPOTICUE_COMPRESS_MIN_BYTES', '1024')))
    except ValueError:
        app.config['COMPRESS_MIN_SIZE'] = 1024
    Compress().init_app(app)


def create_app(service_manager: Optional[ServiceManager] = None) -> Flask:
    """Return a freshly constructed Flask application.

    ``service_manager`` replaces the process-wide manager; tests pass one
    built around a fake player and an in-memory store.
    """
    logger = setup_logger("spoticue")

    if service_manager is not None:
        set_service_manager(service_manager)
    manager = get_service_manager()

    app = Flask(__name__)
    app.config['JSON_SORT_KEYS'] = False
    app.extensions['spoticue.services'] = manager
    _configure_compression(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(schedules_bp)
    app.register_blueprint(music_bp)
    register_error_handlers(app)

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _add_headers(response: Response) -> Response:
        started = getattr(g, 'request_started', None)
        if started is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers['X-Response-Time-ms'] = f"{elapsed_ms:.1f}"
            if elapsed_ms > 1000:
                logger.warning(f"🐢 Slow request {request.method} {request.path} took {elapsed_ms:.0f}ms")
        response.headers['X-App-Version'] = VERSION
        response.headers.setdefault('Cache-Control', 'no-store')
        return response

    logger.info(f"🌐 SpotiCue API ready (v{VERSION})")
    return app


__all__ = ["create_app"]
