"""Persistence: SQLAlchemy engine/session, ORM models, repositories."""
