from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Field kinds that offer the "Initialize Default Values" setting
SUPPORTED_FIELD_TYPES = [
    "text", "textarea", "number", "email", "url", "password",
    "select", "checkbox", "radio", "button_group", "true_false",
    "date_picker", "date_time_picker", "time_picker", "color_picker",
    "range", "wysiwyg", "oembed", "user", "post_object", "page_link",
    "relationship", "taxonomy", "image", "file", "gallery",
]

LOCATION_OPERATORS = ["==", "!="]


def is_truthy(v: Any) -> bool:
    """Setting flags arrive as 1/"1"/True; "0", "false" and empty values mean off."""
    if v is None or v is False:
        return False
    if isinstance(v, str):
        return v.strip().lower() not in ("", "0", "false")
    if isinstance(v, (list, tuple, dict)):
        return len(v) > 0
    return bool(v)


@dataclass
class FieldDescriptor:
    key: str
    name: str
    type: str = "text"
    default_value: Any = None
    init_default_values: bool = False
    multiple: bool = False
    label: str = ""
    sub_fields: List["FieldDescriptor"] = field(default_factory=list)
    layouts: List["Layout"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        return cls(
            key=str(data.get("key", "")),
            name=str(data.get("name", "")),
            type=str(data.get("type", "text")),
            default_value=data.get("default_value"),
            init_default_values=is_truthy(data.get("init_default_values")),
            multiple=is_truthy(data.get("multiple")),
            label=str(data.get("label", "")),
            sub_fields=[cls.from_dict(f) for f in data.get("sub_fields") or []],
            layouts=[Layout.from_dict(layout) for layout in _layout_list(data.get("layouts"))],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "type": self.type,
            "label": self.label,
            "default_value": self.default_value,
            "init_default_values": 1 if self.init_default_values else 0,
        }
        if self.multiple:
            out["multiple"] = 1
        if self.sub_fields:
            out["sub_fields"] = [f.to_dict() for f in self.sub_fields]
        if self.layouts:
            out["layouts"] = [layout.to_dict() for layout in self.layouts]
        return out


@dataclass
class Layout:
    key: str = ""
    name: str = ""
    sub_fields: List[FieldDescriptor] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Layout":
        return cls(
            key=str(data.get("key", "")),
            name=str(data.get("name", "")),
            sub_fields=[FieldDescriptor.from_dict(f) for f in data.get("sub_fields") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "sub_fields": [f.to_dict() for f in self.sub_fields],
        }


@dataclass
class LocationRule:
    param: str
    operator: str
    value: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocationRule":
        return cls(
            param=str(data.get("param", "")),
            operator=str(data.get("operator", "")),
            value=str(data.get("value", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"param": self.param, "operator": self.operator, "value": self.value}


@dataclass
class FieldGroup:
    key: str
    title: str = ""
    id: Optional[int] = None
    fields: List[FieldDescriptor] = field(default_factory=list)
    # OR-groups of AND-rules
    location: List[List[LocationRule]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldGroup":
        group_id = data.get("ID", data.get("id"))
        return cls(
            key=str(data.get("key", "")),
            title=str(data.get("title", "")),
            id=int(group_id) if group_id not in (None, "") else None,
            fields=[FieldDescriptor.from_dict(f) for f in data.get("fields") or []],
            location=[
                [LocationRule.from_dict(r) for r in and_group]
                for and_group in data.get("location") or []
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ID": self.id,
            "key": self.key,
            "title": self.title,
            "fields": [f.to_dict() for f in self.fields],
            "location": [[r.to_dict() for r in and_group] for and_group in self.location],
        }


def _layout_list(layouts: Any) -> List[Dict[str, Any]]:
    # Exported definitions key layouts by layout key
    if isinstance(layouts, dict):
        return list(layouts.values())
    return list(layouts or [])


def _validate_fields(fields: Any, path: str, seen: set, errors: List[str]) -> None:
    if not isinstance(fields, list):
        errors.append(f"'{path}' must be a list")
        return
    for i, f in enumerate(fields):
        where = f"{path}[{i}]"
        if not isinstance(f, dict):
            errors.append(f"'{where}' must be an object")
            continue
        key = f.get("key")
        if not isinstance(key, str) or not key.strip():
            errors.append(f"Missing required field: {where}.key")
        elif key in seen:
            errors.append(f"Duplicate field key: {key}")
        else:
            seen.add(key)
        if not isinstance(f.get("name"), str):
            errors.append(f"Field '{where}.name' must be a string")
        ftype = f.get("type", "text")
        if is_truthy(f.get("init_default_values")) and ftype not in SUPPORTED_FIELD_TYPES:
            errors.append(f"Field '{key}': default initialization is not supported for type '{ftype}'")
        if "sub_fields" in f:
            _validate_fields(f["sub_fields"], f"{where}.sub_fields", seen, errors)
        if "layouts" in f:
            for j, layout in enumerate(_layout_list(f["layouts"])):
                if not isinstance(layout, dict):
                    errors.append(f"'{where}.layouts[{j}]' must be an object")
                    continue
                _validate_fields(layout.get("sub_fields") or [], f"{where}.layouts[{j}].sub_fields", seen, errors)


def validate_field_group(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []
    if not isinstance(data, dict):
        return ["Field group must be an object"]

    key = data.get("key")
    if not isinstance(key, str) or not key.strip():
        errors.append("Missing required field: key")

    _validate_fields(data.get("fields") or [], "fields", set(), errors)

    location = data.get("location") or []
    if not isinstance(location, list):
        errors.append("'location' must be a list of rule groups")
        return errors
    for i, and_group in enumerate(location):
        if not isinstance(and_group, list):
            errors.append(f"'location[{i}]' must be a list of rules")
            continue
        for j, rule in enumerate(and_group):
            if not isinstance(rule, dict) or not rule.get("param"):
                errors.append(f"Rule 'location[{i}][{j}]' must have a param")
                continue
            if rule.get("operator") not in LOCATION_OPERATORS:
                errors.append(f"Rule 'location[{i}][{j}]' has unknown operator '{rule.get('operator')}'")

    return errors
