"""Database engine, session factory and declarative base."""

from biohub.db.session import Base, SessionLocal, engine, get_db, transaction

__all__ = ["Base", "SessionLocal", "engine", "get_db", "transaction"]
