"""Environment-driven settings for the Reviewflow process."""
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SECRET_FILE = ".env"

_TRUTHY = {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """Return integer environment variable value or fallback default."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _get_bool_env(name: str) -> bool:
    return str(os.getenv(name, "")).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Process-wide settings; read once at startup."""

    github_token: str | None = None
    webhook_secret: str | None = None
    config_path: str = "reviewflow.yml"
    bot_name: str = "reviewflow"
    dry_run: bool = False
    webhook_port: int = 3000
    log_level: str = "INFO"
    logs_dir: str | None = None

    @classmethod
    def from_env(cls, env_file: str | None = SECRET_FILE) -> "Settings":
        """Build settings from the environment, loading *env_file* first when it exists."""
        if env_file and os.path.exists(env_file):
            logger.info("Loading environment from %s", env_file)
            load_dotenv(env_file)

        return cls(
            github_token=os.getenv("GITHUB_TOKEN") or None,
            webhook_secret=os.getenv("WEBHOOK_SECRET") or None,
            config_path=os.getenv("REVIEWFLOW_CONFIG", "reviewflow.yml"),
            bot_name=os.getenv("REVIEWFLOW_NAME", "reviewflow"),
            dry_run=_get_bool_env("DRY_RUN"),
            webhook_port=_get_int_env("WEBHOOK_PORT", 3000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            logs_dir=os.getenv("LOGS_DIR") or None,
        )

    def secrets(self) -> list[str]:
        """Values that must never appear in logs."""
        return [value for value in (self.github_token, self.webhook_secret) if value]
