# storefront/_singletons.py
from functools import lru_cache

from sqlalchemy.orm import sessionmaker

from . import config
from .db import create_database
from .notifications import LogNotifier
from .phonepe import PhonePeClient


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    if config.DATABASE_URL.startswith("sqlite"):
        config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    session_factory, _ = create_database(config.DATABASE_URL)
    return session_factory


@lru_cache(maxsize=1)
def get_gateway() -> PhonePeClient:
    return PhonePeClient.from_config()


@lru_cache(maxsize=1)
def get_notifier() -> LogNotifier:
    return LogNotifier()
