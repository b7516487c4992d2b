"""
Default value backfill.

For every field in a group that is flagged for initialization and carries
a default, the group's location rules decide which records the default is
written to. Only records with no stored value for the field are touched.
"""

from typing import Any, Dict, List, Union

from .flatten import flatten_fields, select_eligible
from .logger import get_logger
from .schema import FieldDescriptor, FieldGroup, LocationRule
from .storage import FieldStore

logger = get_logger()


class DefaultValueProcessor:
    """Applies field default values to records that lack them."""

    def __init__(self, store: FieldStore):
        self.store = store
        self._strategies = {
            "post_type": self._process_post_type,
            "user_role": self._process_user_role,
            "user_form": self._process_user_form,
            "options_page": self._process_options_page,
        }

    def process_field_group(self, group: Union[FieldGroup, Dict[str, Any]]) -> int:
        """
        Initialize default values for every eligible field of a group.

        Args:
            group: Field group, with or without its fields loaded

        Returns:
            Number of records written
        """
        if isinstance(group, dict):
            group = FieldGroup.from_dict(group)

        fields = self._get_flattened_fields(group)
        eligible = select_eligible(fields)
        if not eligible:
            logger.debug("No fields to initialize", group=group.key)
            return 0

        logger.record_group_processed()
        written = 0
        for f in eligible:
            logger.record_field_processed()
            written += self._process_field(f, group.location)

        logger.info(
            f"Initialized default values for {group.key}",
            group=group.key,
            fields=len(eligible),
            records=written,
        )
        return written

    def _get_flattened_fields(self, group: FieldGroup) -> List[FieldDescriptor]:
        if not group.fields:
            group.fields = self.store.get_fields(group)
        return flatten_fields(group.fields)

    def _process_field(self, f: FieldDescriptor, location: List[List[LocationRule]]) -> int:
        written = 0
        for and_group in location:
            for rule in and_group:
                # Only positive matches select records
                if rule.operator != "==":
                    continue
                strategy = self._strategies.get(rule.param)
                if strategy is None:
                    continue
                count = strategy(f, rule.value)
                if count:
                    logger.record_write(rule.param, count)
                written += count
        return written

    def _process_post_type(self, f: FieldDescriptor, post_type: str) -> int:
        post_ids = self.store.posts_missing_value(post_type, f.name)
        for post_id in post_ids:
            self.store.update_field(f.key, f.default_value, post_id, field=f)
        if post_ids:
            logger.debug("Initialized posts", field=f.key, post_type=post_type, count=len(post_ids))
        return len(post_ids)

    def _process_user_role(self, f: FieldDescriptor, role: str) -> int:
        return self._write_users(f, self.store.users_missing_value(f.name, role=role))

    def _process_user_form(self, f: FieldDescriptor, form: str) -> int:
        # Applies to every account regardless of which form
        return self._write_users(f, self.store.users_missing_value(f.name))

    def _write_users(self, f: FieldDescriptor, user_ids: List[int]) -> int:
        for user_id in user_ids:
            self.store.update_field(f.key, f.default_value, f"user_{user_id}", field=f)
        if user_ids:
            logger.debug("Initialized users", field=f.key, count=len(user_ids))
        return len(user_ids)

    def _process_options_page(self, f: FieldDescriptor, page: str) -> int:
        if self.store.has_value(f.key, "option", field=f):
            return 0
        self.store.update_field(f.key, f.default_value, "option", field=f)
        logger.debug("Initialized option", field=f.key, page=page)
        return 1
