#!/usr/bin/env python3
"""
Simple runner script for the Flask application.
This script ensures the correct Python path is set and runs the app.
"""

import sys
from pathlib import Path

# Add the current directory to Python path
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

from config_manager import ConfigManager
from scoring_service.logging_config import setup_logging, stop_logging, get_logger
from app.main import create_app


def main():
    config = ConfigManager()
    app_config = config.get_app_config()

    setup_logging(debug=app_config.debug)
    logger = get_logger(__name__)
    logger.info(f"Starting Flask application from {current_dir}")

    app = create_app(config)
    try:
        app.run(
            host=app_config.host,
            port=app_config.port,
            debug=app_config.debug
        )
    finally:
        stop_logging()


if __name__ == "__main__":
    main()
