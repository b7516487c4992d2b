"""
Entry points the hosting integration calls to run backfill passes.

Automatic triggers (group saved, schema sync, startup sweep) never raise:
failures are logged and the pass is abandoned. The manual trigger reports
its outcome as a {"success": bool, "data": str} envelope.
"""

import hashlib
import hmac
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Optional, Union

from .env import PROCESS_ACTION
from .logger import get_logger
from .processor import DefaultValueProcessor
from .schema import FieldGroup
from .storage import FieldStore

logger = get_logger()

MANAGE_CAPABILITY = "manage_options"


class InvalidTokenError(Exception):
    """Raised when a manual trigger carries a missing or invalid token."""
    pass


class PermissionDeniedError(Exception):
    """Raised when the caller lacks the capability to run a manual trigger."""
    pass


@dataclass
class ManualTriggerRequest:
    group_key: Any
    token: Optional[str] = None
    capabilities: FrozenSet[str] = field(default_factory=frozenset)


def create_token(secret: str, action: str = PROCESS_ACTION) -> str:
    return hmac.new(secret.encode("utf-8"), action.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_token(token: Optional[str], secret: Optional[str], action: str = PROCESS_ACTION) -> bool:
    if not token or not secret:
        return False
    return hmac.compare_digest(token, create_token(secret, action))


def token_verifier(secret: Optional[str]) -> Callable[[Optional[str]], bool]:
    return lambda token: verify_token(token, secret)


_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_text(value: Any) -> str:
    """Strip tags, control characters and surrounding whitespace."""
    if value is None:
        return ""
    text = _TAG_RE.sub("", str(value))
    text = _CONTROL_RE.sub(" ", text)
    return " ".join(text.split())


def _envelope(success: bool, data: str) -> Dict[str, Any]:
    return {"success": success, "data": data}


class Hooks:
    """Named backfill entry points, wired once per process."""

    def __init__(
        self,
        processor: DefaultValueProcessor,
        store: FieldStore,
        verify: Callable[[Optional[str]], bool],
        clock: Optional[Callable[[], datetime]] = None,
        sync_window: int = 60,
    ):
        self.processor = processor
        self.store = store
        self.verify = verify
        self.clock = clock or datetime.now
        self.sync_window = sync_window
        self._startup_done = False

    def on_group_saved(self, group: Union[FieldGroup, Dict[str, Any]]) -> None:
        """Process a group right after its definition was persisted."""
        self._run(group, trigger="group_saved")

    def on_schema_sync(self, now: Optional[datetime] = None) -> int:
        """
        Reprocess groups that look freshly synced.

        A group counts as synced when its stored modification time is less
        than sync_window seconds old. This is a heuristic: a slow sync can
        be missed and an unrelated recent edit is picked up as well.

        Returns:
            Number of groups reprocessed
        """
        now = now or self.clock()
        count = 0
        for summary in self.store.get_field_groups():
            modified = self.store.get_group_modified(summary)
            if modified is None:
                continue
            if (now - modified).total_seconds() < self.sync_window:
                full = self.store.get_field_group(summary.key)
                if full is not None:
                    self._run(full, trigger="schema_sync")
                    count += 1
        logger.debug("Schema sync check complete", reprocessed=count)
        return count

    def on_startup(self) -> bool:
        """
        Reprocess every known group, once per process.

        Returns:
            False if the sweep already ran
        """
        if self._startup_done:
            return False
        self._startup_done = True

        for summary in self.store.get_field_groups():
            full = self.store.get_field_group(summary.key)
            if full is not None:
                self._run(full, trigger="startup")
        return True

    def on_manual_trigger(self, request: ManualTriggerRequest) -> Dict[str, Any]:
        """
        Process one group on an administrator's request.

        Raises:
            InvalidTokenError: Token missing or invalid
            PermissionDeniedError: Caller lacks manage_options
        """
        if not self.verify(request.token):
            logger.warning("Rejected manual trigger with invalid token")
            raise InvalidTokenError("Invalid token")

        if MANAGE_CAPABILITY not in request.capabilities:
            logger.warning("Rejected manual trigger without capability")
            raise PermissionDeniedError("Insufficient permissions")

        group_key = sanitize_text(request.group_key)
        if not group_key:
            return _envelope(False, "Invalid field group key")

        group = self.store.get_field_group(group_key)
        if group is None:
            return _envelope(False, "Field group not found")

        try:
            written = self.processor.process_field_group(group)
        except Exception as e:
            self.store.rollback()
            logger.record_failure(type(e).__name__)
            logger.error("Manual processing failed", group=group_key, error=str(e))
            return _envelope(False, f"Error processing default values: {e}")

        logger.info("Manual processing complete", group=group_key, records=written)
        return _envelope(True, "Default values processed successfully")

    def _run(self, group: Union[FieldGroup, Dict[str, Any]], trigger: str) -> None:
        key = group.key if isinstance(group, FieldGroup) else group.get("key")
        try:
            self.processor.process_field_group(group)
        except Exception as e:
            self.store.rollback()
            logger.record_failure(type(e).__name__)
            logger.error("Default value processing failed", trigger=trigger, group=key, error=str(e))
