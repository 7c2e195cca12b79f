"""Database models and initialization for the job queue."""

from .db_init import create_engine_and_sessions, init_db
from .db_models import Base, PinningJobModel

__all__ = ["Base", "PinningJobModel", "create_engine_and_sessions", "init_db"]
