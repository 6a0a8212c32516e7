import logging
import os


def setup_logging(level: str = None):
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
