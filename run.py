#!/usr/bin/env python3
"""
SpotiCue Runner - Starts the schedule engine and the JSON API
"""

import os
import sys
from pathlib import Path

from waitress import serve

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from spoticue.app import create_app
from spoticue.config import load_settings
from spoticue.services.service_manager import get_service_manager
from spoticue.utils.logger import log_shutdown, log_startup, setup_logger


def main() -> None:
    logger = setup_logger("spoticue.runner")
    settings = load_settings()

    port = int(os.environ.get("PORT", settings.port))
    host = settings.host

    log_startup("SpotiCue")
    logger.info(f"🚀 Starting SpotiCue on {host}:{port}")
    logger.info(f"🌍 Environment: {settings.environment}")
    logger.info(f"🔧 Debug mode: {settings.debug}")

    app = create_app()
    manager = get_service_manager()

    try:
        if settings.debug:
            app.run(host=host, port=port, debug=True, use_reloader=False)
        else:
            threads = int(os.environ.get("SPOTICUE_WAITRESS_THREADS", "4"))
            backlog = int(os.environ.get("SPOTICUE_WAITRESS_BACKLOG", "128"))
            logger.info(f"🍽️ Using Waitress WSGI server (threads={threads}, backlog={backlog})")
            serve(app, host=host, port=port, threads=threads, backlog=backlog)
    finally:
        manager.shutdown()
        log_shutdown(logger, "SpotiCue")


if __name__ == "__main__":
    main()
