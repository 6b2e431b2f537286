from .base import Base
from .session import get_db, get_sessionmaker, init_db

__all__ = ["Base", "get_db", "get_sessionmaker", "init_db"]
