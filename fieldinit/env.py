import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROCESS_ACTION = "fieldinit_process"


def env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() not in ("0", "false", "no", "off", "")


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path)


@dataclass
class Settings:
    db_path: Path
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = True
    secret: Optional[str] = None
    sync_window: int = 60


def get_settings() -> Settings:
    """Build settings from FIELDINIT_* environment variables."""
    return Settings(
        db_path=Path(os.getenv("FIELDINIT_DB", "data/fieldinit.db")),
        log_level=os.getenv("FIELDINIT_LOG_LEVEL", "INFO"),
        log_dir=Path(os.getenv("FIELDINIT_LOG_DIR", "logs")),
        log_to_file=env_flag("FIELDINIT_LOG_TO_FILE"),
        secret=os.getenv("FIELDINIT_SECRET") or None,
        sync_window=int(os.getenv("FIELDINIT_SYNC_WINDOW", "60")),
    )
