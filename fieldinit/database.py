"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for field groups and the records they apply to.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import (
    create_engine,
    inspect,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class FieldGroupRecord(Base):
    """Stored field group definition."""

    __tablename__ = "field_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String, nullable=False, unique=True)  # group_xxxxxxxx
    title = Column(String, nullable=False, default="")
    definition = Column(Text, nullable=False, default="{}")  # JSON: fields + location
    active = Column(Boolean, nullable=False, default=True)
    modified = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class Post(Base):
    """Content record."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_type = Column(String, nullable=False, index=True)
    post_status = Column(String, nullable=False, default="publish")  # publish, draft, auto-draft, trash
    title = Column(String, nullable=False, default="")
    modified = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class PostMeta(Base):
    __tablename__ = "postmeta"

    meta_id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    meta_key = Column(String, nullable=False, index=True)
    meta_value = Column(Text)  # JSON encoded


class User(Base):
    """User account."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    login = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, default="")


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String, nullable=False, index=True)


class UserMeta(Base):
    __tablename__ = "usermeta"

    umeta_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    meta_key = Column(String, nullable=False, index=True)
    meta_value = Column(Text)  # JSON encoded


class Option(Base):
    """Site-wide setting (options slot)."""

    __tablename__ = "options"

    option_id = Column(Integer, primary_key=True, autoincrement=True)
    option_name = Column(String, nullable=False, unique=True)
    option_value = Column(Text)  # JSON encoded


def _engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = _engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def has_field_group_tables(db_path: Path) -> bool:
    """
    Check whether the field group storage exists.

    Args:
        db_path: Path to SQLite database file

    Returns:
        True if the database file exists and holds the field_groups table
    """
    if not db_path.exists():
        return False
    engine = _engine(db_path)
    try:
        return inspect(engine).has_table(FieldGroupRecord.__tablename__)
    finally:
        engine.dispose()


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = _engine(db_path)
    Session = sessionmaker(bind=engine)
    return Session()
