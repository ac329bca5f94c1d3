from .session import AsyncSessionLocal, async_engine, get_async_db, init_db

__all__ = ["AsyncSessionLocal", "async_engine", "get_async_db", "init_db"]
