"""
Tests for database.py - SQLite database operations.
"""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from fieldinit.database import (
    FieldGroupRecord,
    Option,
    Post,
    PostMeta,
    User,
    get_session,
    has_field_group_tables,
    init_database,
)


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        """Test that init_database creates the database file."""
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        """Test that init_database creates the tables."""
        db_path = tmp_path / "test.db"
        init_database(db_path)

        session = get_session(db_path)
        # Should not raise error if tables exist
        assert session.query(FieldGroupRecord).count() == 0
        assert session.query(Post).count() == 0
        assert session.query(User).count() == 0
        session.close()

    def test_init_creates_parent_directories(self, tmp_path):
        """Test that init_database creates parent directories if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_has_field_group_tables(self, tmp_path):
        db_path = tmp_path / "test.db"
        assert has_field_group_tables(db_path) is False

        init_database(db_path)

        assert has_field_group_tables(db_path) is True

    def test_empty_database_has_no_field_groups(self, tmp_path):
        """A database without the field group table is not usable."""
        db_path = tmp_path / "other.db"
        session = get_session(db_path)
        session.execute(text("CREATE TABLE unrelated (id INTEGER)"))
        session.commit()
        session.close()

        assert has_field_group_tables(db_path) is False


class TestRecords:
    """Test basic model behaviour."""

    def test_duplicate_group_key_fails(self, db_session):
        db_session.add(FieldGroupRecord(key="group_a", title="A"))
        db_session.commit()

        db_session.add(FieldGroupRecord(key="group_a", title="Again"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_group_modified_set_on_insert(self, db_session):
        before = datetime.now()
        db_session.add(FieldGroupRecord(key="group_a", title="A"))
        db_session.commit()
        after = datetime.now()

        record = db_session.query(FieldGroupRecord).filter_by(key="group_a").first()
        assert before <= record.modified <= after

    def test_post_defaults(self, db_session):
        post = Post(post_type="article")
        db_session.add(post)
        db_session.commit()

        assert post.post_status == "publish"
        assert post.title == ""

    def test_post_requires_type(self, db_session):
        db_session.add(Post())
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_meta_rows_by_key(self, db_session):
        post = Post(post_type="article")
        db_session.add(post)
        db_session.flush()
        db_session.add(PostMeta(post_id=post.id, meta_key="subtitle", meta_value='"x"'))
        db_session.add(PostMeta(post_id=post.id, meta_key="_subtitle", meta_value='"field_abc"'))
        db_session.commit()

        assert db_session.query(PostMeta).filter_by(meta_key="subtitle").count() == 1

    def test_option_name_unique(self, db_session):
        db_session.add(Option(option_name="options_color", option_value='"red"'))
        db_session.commit()

        db_session.add(Option(option_name="options_color", option_value='"blue"'))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_query_groups_by_modified(self, db_session):
        now = datetime.now()
        db_session.add(FieldGroupRecord(key="group_old", title="Old", modified=now - timedelta(days=1)))
        db_session.add(FieldGroupRecord(key="group_new", title="New", modified=now))
        db_session.commit()

        cutoff = now - timedelta(seconds=60)
        recent = db_session.query(FieldGroupRecord).filter(FieldGroupRecord.modified >= cutoff).all()

        assert [r.key for r in recent] == ["group_new"]
