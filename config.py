from pathlib import Path
from typing import Optional
import sys
from pydantic_settings import BaseSettings
from loguru import logger
from dotenv import load_dotenv

load_dotenv()

DYNO_PORT = 1778


class Settings(BaseSettings):
    """dynoclient configuration - daemon transport and batch execution"""

    app_name: str = "dynoclient"
    app_version: str = "0.3.0"
    debug: bool = False
    log_level: str = "INFO"

    # Directory structure
    logs_dir: Path = Path.home() / ".dynoclient" / "logs"

    # Transport
    default_port: int = DYNO_PORT
    socket_timeout: Optional[float] = None   # None = block until the daemon answers
    max_frame_bytes: int = 64 * 1024 * 1024  # 64 MiB

    # Batch execution
    batch_max_workers: Optional[int] = None  # None = one worker per host

    model_config = {
        "env_file": ".env",
        "env_prefix": "DYNO_",
        "case_sensitive": False,
        "frozen": True,
    }


def setup_logging(level: Optional[str] = None):
    """Route loguru output to a rotating file, plus stderr in debug mode."""
    level = (level or settings.log_level).upper()

    logger.remove()
    try:
        settings.logs_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.logs_dir / "dynoclient.log",
            rotation="10 MB",
            retention="1 month",
            level=level,
            enqueue=True,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {thread.name} | {name}:{function}:{line} | {message}"
        )
    except OSError as e:
        # Read-only home: keep stderr logging only
        logger.add(sys.stderr, level="WARNING", format="{time:HH:mm:ss} | {level} | {message}")
        logger.warning(f"Cannot write logs to {settings.logs_dir}: {e}")

    if settings.debug:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format="{time:HH:mm:ss} | {level} | {thread.name} | {message}"
        )


settings = Settings()
