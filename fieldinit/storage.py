"""
Field value storage API.

FieldStore is the backend the backfill routine talks to: it loads field
group definitions, answers "which records lack a value for this field"
queries, and performs keyed field writes with per-kind value formatting.

Records are addressed the way the host framework addresses them:
an integer post id, "user_<id>", or "option" for the site-wide slot.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import and_, exists

from .database import FieldGroupRecord, Option, Post, PostMeta, User, UserMeta, UserRole
from .flatten import flatten_fields
from .schema import FieldDescriptor, FieldGroup, is_truthy

EXCLUDED_POST_STATUSES = ["auto-draft", "trash"]
LIST_FIELD_TYPES = {"checkbox", "relationship", "gallery"}
NUMERIC_FIELD_TYPES = {"number", "range"}
OPTIONS_PREFIX = "options_"

Target = Union[int, str]


class FieldNotFoundError(LookupError):
    """Raised when a field key does not match any stored field."""
    pass


def parse_target(target: Target) -> Tuple[str, Optional[int]]:
    """
    Split a record address into (kind, id).

    Returns:
        ("post", id), ("user", id) or ("option", None)

    Raises:
        ValueError: If the address is not recognised
    """
    if isinstance(target, bool):
        raise ValueError(f"Invalid target: {target!r}")
    if isinstance(target, int):
        return ("post", target)
    t = str(target).strip()
    if t in ("option", "options"):
        return ("option", None)
    if t.startswith("user_") and t[5:].isdigit():
        return ("user", int(t[5:]))
    if t.isdigit():
        return ("post", int(t))
    raise ValueError(f"Invalid target: {target!r}")


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return ""
        try:
            return int(s)
        except ValueError:
            pass
        try:
            return float(s)
        except ValueError:
            return value
    return value


def format_value(f: FieldDescriptor, value: Any) -> Any:
    """Coerce a value to the shape stored for the field's kind."""
    if f.type == "true_false":
        return 1 if is_truthy(value) else 0
    if f.type in NUMERIC_FIELD_TYPES:
        return _to_number(value)
    if f.type in LIST_FIELD_TYPES or f.multiple:
        if value is None or value == "":
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        return [value]
    return value


def _encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _option_name(name: str, reference: bool = False) -> str:
    # Reference entries sit under "_options_<name>"
    return f"_{OPTIONS_PREFIX}{name}" if reference else OPTIONS_PREFIX + name


def _decode(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        # Written by something other than this store
        return raw


class FieldStore:
    """Field group and field value access over a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session
        self._fields_by_key: Optional[Dict[str, FieldDescriptor]] = None

    # Field groups

    def save_field_group(self, data: Union[Dict[str, Any], FieldGroup], modified: Optional[datetime] = None) -> FieldGroup:
        """
        Insert or update a field group definition, keyed by group key.

        Args:
            data: Group definition (dict in export format, or FieldGroup)
            modified: Modification time to record (default: now)

        Returns:
            The stored group with its id
        """
        group = data if isinstance(data, FieldGroup) else FieldGroup.from_dict(data)
        definition = {
            "fields": [f.to_dict() for f in group.fields],
            "location": [[r.to_dict() for r in and_group] for and_group in group.location],
        }

        record = self.session.query(FieldGroupRecord).filter_by(key=group.key).first()
        if record is None:
            record = FieldGroupRecord(key=group.key)
            self.session.add(record)
        record.title = group.title
        record.definition = _encode(definition)
        record.active = True
        record.modified = modified or datetime.now()
        self.session.commit()

        self._fields_by_key = None
        group.id = record.id
        return group

    def get_field_groups(self) -> List[FieldGroup]:
        """Return all active groups. Fields are not materialized."""
        records = (
            self.session.query(FieldGroupRecord)
            .filter(FieldGroupRecord.active.is_(True))
            .order_by(FieldGroupRecord.id)
            .all()
        )
        groups = []
        for record in records:
            group = self._to_group(record)
            group.fields = []
            groups.append(group)
        return groups

    def get_field_group(self, selector: Union[int, str]) -> Optional[FieldGroup]:
        """Load a full group (fields included) by key or id."""
        record = self._find_group_record(selector)
        if record is None:
            return None
        return self._to_group(record)

    def get_fields(self, group: FieldGroup) -> List[FieldDescriptor]:
        """Load the top-level fields of a group from storage."""
        selector = group.key if group.key else group.id
        if selector is None:
            return []
        stored = self.get_field_group(selector)
        return stored.fields if stored else []

    def get_group_modified(self, group: FieldGroup) -> Optional[datetime]:
        record = self._find_group_record(group.key if group.key else group.id)
        return record.modified if record else None

    def get_field(self, key: str) -> Optional[FieldDescriptor]:
        """Look up a field anywhere in the stored groups by its key."""
        if self._fields_by_key is None:
            index: Dict[str, FieldDescriptor] = {}
            for record in self.session.query(FieldGroupRecord).order_by(FieldGroupRecord.id):
                for f in flatten_fields(self._to_group(record).fields):
                    index.setdefault(f.key, f)
            self._fields_by_key = index
        return self._fields_by_key.get(key)

    def _find_group_record(self, selector: Union[int, str, None]) -> Optional[FieldGroupRecord]:
        if selector is None:
            return None
        query = self.session.query(FieldGroupRecord)
        if isinstance(selector, int) or str(selector).isdigit():
            return query.filter_by(id=int(selector)).first()
        return query.filter_by(key=str(selector)).first()

    @staticmethod
    def _to_group(record: FieldGroupRecord) -> FieldGroup:
        definition = _decode(record.definition) or {}
        return FieldGroup.from_dict({
            "ID": record.id,
            "key": record.key,
            "title": record.title,
            "fields": definition.get("fields", []),
            "location": definition.get("location", []),
        })

    def rollback(self) -> None:
        """Discard writes not yet committed by an aborted pass."""
        self.session.rollback()

    # Record queries

    def posts_missing_value(self, post_type: str, meta_key: str) -> List[int]:
        """Ids of live posts of a type with no stored value under meta_key."""
        has_meta = exists().where(and_(PostMeta.post_id == Post.id, PostMeta.meta_key == meta_key))
        rows = (
            self.session.query(Post.id)
            .filter(
                Post.post_type == post_type,
                ~Post.post_status.in_(EXCLUDED_POST_STATUSES),
                ~has_meta,
            )
            .order_by(Post.id)
            .all()
        )
        return [post_id for (post_id,) in rows]

    def users_missing_value(self, meta_key: str, role: Optional[str] = None) -> List[int]:
        """Ids of users (optionally holding role) with no stored value under meta_key."""
        has_meta = exists().where(and_(UserMeta.user_id == User.id, UserMeta.meta_key == meta_key))
        query = self.session.query(User.id).filter(~has_meta)
        if role is not None:
            has_role = exists().where(and_(UserRole.user_id == User.id, UserRole.role == role))
            query = query.filter(has_role)
        return [user_id for (user_id,) in query.order_by(User.id).all()]

    # Field values

    def has_value(self, selector: str, target: Target, field: Optional[FieldDescriptor] = None) -> bool:
        """Whether any value (even an empty one) is stored for the field."""
        name = field.name if field is not None else self._storage_name(selector)
        return self._find_value_row(name, target) is not None

    def get_value(self, selector: str, target: Target) -> Any:
        row = self._find_value_row(self._storage_name(selector), target)
        if row is None:
            return None
        raw = row.option_value if isinstance(row, Option) else row.meta_value
        return _decode(raw)

    def update_field(self, key: str, value: Any, target: Target, field: Optional[FieldDescriptor] = None) -> None:
        """
        Write a field value through its field definition.

        The value is formatted for the field's kind and stored under the
        field's name, alongside a "_<name>" reference to the field key.

        Args:
            key: Field key
            value: Value to store
            target: Record address
            field: Definition to write through. A key reused by several
                groups resolves to the first stored group when omitted.

        Raises:
            FieldNotFoundError: If no stored field has this key
            ValueError: If the target address is invalid
        """
        f = field if field is not None else self.get_field(key)
        if f is None:
            raise FieldNotFoundError(f"Field not found: {key}")

        self._write(f.name, format_value(f, value), target)
        self._write(f.name, f.key, target, reference=True)
        self.session.commit()

    def _storage_name(self, selector: str) -> str:
        f = self.get_field(selector)
        return f.name if f is not None else selector

    def _find_value_row(self, name: str, target: Target, reference: bool = False):
        kind, record_id = parse_target(target)
        if kind == "option":
            return self.session.query(Option).filter_by(option_name=_option_name(name, reference)).first()
        meta_key = f"_{name}" if reference else name
        if kind == "post":
            return self.session.query(PostMeta).filter_by(post_id=record_id, meta_key=meta_key).first()
        return self.session.query(UserMeta).filter_by(user_id=record_id, meta_key=meta_key).first()

    def _write(self, name: str, value: Any, target: Target, reference: bool = False) -> None:
        kind, record_id = parse_target(target)
        row = self._find_value_row(name, target, reference=reference)
        encoded = _encode(value)

        if row is not None:
            if kind == "option":
                row.option_value = encoded
            else:
                row.meta_value = encoded
            return

        meta_key = f"_{name}" if reference else name
        if kind == "post":
            self.session.add(PostMeta(post_id=record_id, meta_key=meta_key, meta_value=encoded))
        elif kind == "user":
            self.session.add(UserMeta(user_id=record_id, meta_key=meta_key, meta_value=encoded))
        else:
            self.session.add(Option(option_name=_option_name(name, reference), option_value=encoded))
        self.session.flush()
