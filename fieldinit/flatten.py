"""
Field tree flattening and backfill eligibility.

A field group's definition is a tree: container fields carry sub-fields
directly, multi-layout fields carry them inside each layout. Backfill works
on the flat, pre-order list of every field in that tree.
"""

from typing import Any, Iterable, List

from .schema import FieldDescriptor


def flatten_fields(fields: Iterable[FieldDescriptor]) -> List[FieldDescriptor]:
    """Return every field in the tree, each field before its descendants."""
    flattened: List[FieldDescriptor] = []

    for f in fields:
        flattened.append(f)

        if f.sub_fields:
            flattened.extend(flatten_fields(f.sub_fields))

        for layout in f.layouts:
            if layout.sub_fields:
                flattened.extend(flatten_fields(layout.sub_fields))

    return flattened


def is_empty_default(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def select_eligible(fields: Iterable[FieldDescriptor]) -> List[FieldDescriptor]:
    """Keep fields flagged for initialization that carry a non-empty default."""
    return [
        f for f in fields
        if f.init_default_values and not is_empty_default(f.default_value)
    ]
