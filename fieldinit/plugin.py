"""
Process wiring.

Plugin checks that field group storage is present, then builds the store,
processor and hooks once and hands them out. Nothing here is global: the
caller owns the Plugin instance.
"""

from pathlib import Path
from typing import List, Optional

from . import __version__
from .database import get_session, has_field_group_tables
from .env import Settings
from .hooks import Hooks, token_verifier
from .logger import get_logger
from .processor import DefaultValueProcessor
from .storage import FieldStore

logger = get_logger()

MISSING_FRAMEWORK_NOTICE = (
    "Field Default Value Initializer requires field group storage to be installed. "
    "Run 'fieldinit init-db' first."
)


def is_field_framework_active(db_path: Path) -> bool:
    return has_field_group_tables(db_path)


class Plugin:
    """Owns the backfill components for one process."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.notices: List[str] = []
        self.hooks: Optional[Hooks] = None
        self.store: Optional[FieldStore] = None
        self._initialized = False

    @property
    def version(self) -> str:
        return __version__

    def init(self) -> Optional[Hooks]:
        """
        Build the hooks, or record an admin notice if field group storage is missing.

        Returns:
            Hooks instance, or None when backfill is disabled
        """
        if self._initialized:
            return self.hooks
        self._initialized = True

        if not is_field_framework_active(self.settings.db_path):
            logger.warning(MISSING_FRAMEWORK_NOTICE, db=str(self.settings.db_path))
            self.notices.append(MISSING_FRAMEWORK_NOTICE)
            return None

        self.store = FieldStore(get_session(self.settings.db_path))
        processor = DefaultValueProcessor(self.store)
        self.hooks = Hooks(
            processor,
            self.store,
            token_verifier(self.settings.secret),
            sync_window=self.settings.sync_window,
        )
        return self.hooks

    def close(self) -> None:
        if self.store is not None:
            self.store.session.close()
