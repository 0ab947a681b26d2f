"""Main entry point for the athlete mindset API"""
import logging

import uvicorn

from src.config import API_HOST, API_PORT, LOG_LEVEL
from src.api.server import create_api_application

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the API server"""
    logger.info(f"Starting API on {API_HOST}:{API_PORT}")
    uvicorn.run(
        create_api_application(),
        host=API_HOST,
        port=API_PORT,
        log_level=LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
