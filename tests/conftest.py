"""
Pytest configuration and shared fixtures.
"""

import os

# Keep test runs from writing log files into the working directory
os.environ.setdefault("FIELDINIT_LOG_TO_FILE", "0")

import json
import pytest
from pathlib import Path
from typing import Any, Dict, List, Optional

from fieldinit.database import Post, PostMeta, User, UserMeta, UserRole, init_database, get_session
from fieldinit.processor import DefaultValueProcessor
from fieldinit.storage import FieldStore


@pytest.fixture
def env_workdir(tmp_path, monkeypatch) -> Path:
    """Empty working directory for .env tests. Variables loaded from .env are undone afterwards."""
    for name in ("FIELDINIT_LOG_TO_FILE", "FIELDINIT_LOG_DIR", "FIELDINIT_LOG_LEVEL"):
        # setenv first so teardown removes whatever .env sets
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Create an initialized temporary database."""
    path = tmp_path / "fieldinit.db"
    init_database(path)
    return path


@pytest.fixture
def db_session(db_path):
    session = get_session(db_path)
    yield session
    session.close()


@pytest.fixture
def store(db_session) -> FieldStore:
    return FieldStore(db_session)


@pytest.fixture
def processor(store) -> DefaultValueProcessor:
    return DefaultValueProcessor(store)


@pytest.fixture
def article_group() -> Dict[str, Any]:
    """Group with a 'subtitle' field initialized on articles."""
    return {
        "key": "group_article",
        "title": "Article details",
        "fields": [
            {
                "key": "field_abc",
                "name": "subtitle",
                "type": "text",
                "default_value": "Untitled",
                "init_default_values": 1,
            },
        ],
        "location": [
            [{"param": "post_type", "operator": "==", "value": "article"}],
        ],
    }


@pytest.fixture
def nested_group() -> Dict[str, Any]:
    """Group with repeater and flexible content fields."""
    return {
        "key": "group_nested",
        "title": "Nested",
        "fields": [
            {"key": "field_a", "name": "a", "type": "text", "default_value": "A", "init_default_values": 1},
            {
                "key": "field_rep",
                "name": "rep",
                "type": "repeater",
                "sub_fields": [
                    {"key": "field_rep_x", "name": "rep_x", "type": "number", "default_value": "5", "init_default_values": 1},
                    {"key": "field_rep_y", "name": "rep_y", "type": "text", "default_value": ""},
                ],
            },
            {
                "key": "field_flex",
                "name": "flex",
                "type": "flexible_content",
                "layouts": [
                    {
                        "key": "layout_1",
                        "name": "hero",
                        "sub_fields": [
                            {"key": "field_hero_title", "name": "hero_title", "type": "text"},
                        ],
                    },
                    {
                        "key": "layout_2",
                        "name": "quote",
                        "sub_fields": [
                            {
                                "key": "field_quote_group",
                                "name": "quote_group",
                                "type": "group",
                                "sub_fields": [
                                    {"key": "field_quote_text", "name": "quote_text", "type": "textarea"},
                                ],
                            },
                        ],
                    },
                ],
            },
            {"key": "field_z", "name": "z", "type": "true_false", "default_value": 0, "init_default_values": "1"},
        ],
        "location": [
            [{"param": "post_type", "operator": "==", "value": "page"}],
        ],
    }


@pytest.fixture
def make_post(db_session):
    """Create a post, optionally with post meta already stored."""
    def _make(post_type: str, status: str = "publish", meta: Optional[Dict[str, Any]] = None) -> int:
        post = Post(post_type=post_type, post_status=status, title=f"{post_type} post")
        db_session.add(post)
        db_session.flush()
        for key, value in (meta or {}).items():
            db_session.add(PostMeta(post_id=post.id, meta_key=key, meta_value=json.dumps(value)))
        db_session.commit()
        return post.id
    return _make


@pytest.fixture
def make_user(db_session):
    """Create a user with roles, optionally with user meta already stored."""
    def _make(login: str, roles: List[str] = (), meta: Optional[Dict[str, Any]] = None) -> int:
        user = User(login=login, email=f"{login}@example.com")
        db_session.add(user)
        db_session.flush()
        for role in roles:
            db_session.add(UserRole(user_id=user.id, role=role))
        for key, value in (meta or {}).items():
            db_session.add(UserMeta(user_id=user.id, meta_key=key, meta_value=json.dumps(value)))
        db_session.commit()
        return user.id
    return _make


class RecordingStore:
    """Stand-in store that records every call made to it."""

    def __init__(self, group=None):
        self.calls = []
        self.group = group

    def __getattr__(self, name):
        def _call(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            if name in ("posts_missing_value", "users_missing_value", "get_fields", "get_field_groups"):
                return []
            if name == "has_value":
                return False
            if name == "get_field_group":
                return self.group
            return None
        return _call


@pytest.fixture
def recording_store():
    return RecordingStore()
