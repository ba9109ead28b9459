#!/usr/bin/env python3
"""
X-Ray - Entry Point
Run the trace ingestion server
"""

import os
import sys

# Add app directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from xray.config import get_config_manager
from xray.logging_utils import build_logger
from xray.main import create_app

if __name__ == "__main__":
    config = get_config_manager(os.path.dirname(os.path.abspath(__file__))).config
    logger = build_logger(config.log_dir)
    app = create_app(config=config)

    host = config.server.host
    port = config.server.port
    debug = config.server.debug

    logger.info("X-Ray ingestion server on http://%s:%s (environment: %s)", host, port, config.environment)
    logger.info("Trace log: %s", config.log_path)

    app.run(host=host, port=port, debug=debug, threaded=True)
