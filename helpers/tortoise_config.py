from dotenv import load_dotenv
load_dotenv()
from tortoise import Tortoise
from contextlib import asynccontextmanager
import logging
import os

from helpers.logger import setup_logging

logger = logging.getLogger(__name__)


MODEL_MODULES = [
    "models.user",
    "models.user_email",
    "models.time_block",
]


def build_tortoise_config(db_url: str, with_aerich: bool = True) -> dict:
    modules = MODEL_MODULES + (["aerich.models"] if with_aerich else [])
    return {
        'connections': {
            'default': db_url
        },
        "apps": {
            "models": {
                "models": modules,
                "default_connection": "default",
            }
        },
        "use_tz": True,
        "timezone": "UTC",
    }


db_url = os.getenv("DATABASE_URI")
if not db_url:
    raise ValueError("DATABASE_URI environment variable is not set.")


TORTOISE_CONFIG = build_tortoise_config(db_url)


@asynccontextmanager
async def lifespan(_):
    setup_logging()
    await Tortoise.init(config=TORTOISE_CONFIG)
    logger.info("Database connections initialised")
    try:
        yield
    finally:
        await Tortoise.close_connections()
