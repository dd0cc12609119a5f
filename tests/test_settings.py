import logging

from reviewflow.core.utils.logging_filters import SecretRedactingFilter
from reviewflow.settings import Settings


def test_defaults(monkeypatch, tmp_path):
    for name in ("GITHUB_TOKEN", "WEBHOOK_SECRET", "REVIEWFLOW_CONFIG", "REVIEWFLOW_NAME", "DRY_RUN", "WEBHOOK_PORT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env(env_file=str(tmp_path / "missing.env"))

    assert settings.config_path == "reviewflow.yml"
    assert settings.bot_name == "reviewflow"
    assert settings.webhook_port == 3000
    assert settings.dry_run is False
    assert settings.secrets() == []


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_abc")
    monkeypatch.setenv("WEBHOOK_SECRET", "hook")
    monkeypatch.setenv("DRY_RUN", "true")
    monkeypatch.setenv("WEBHOOK_PORT", "not-a-port")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env(env_file=None)

    assert settings.dry_run is True
    assert settings.webhook_port == 3000
    assert settings.log_level == "DEBUG"
    assert settings.secrets() == ["ghp_abc", "hook"]


def test_dotenv_file_is_loaded(monkeypatch, tmp_path):
    monkeypatch.setenv("REVIEWFLOW_NAME", "unset")
    monkeypatch.delenv("REVIEWFLOW_NAME")
    env_file = tmp_path / ".env"
    env_file.write_text("REVIEWFLOW_NAME=review-bot\n")

    settings = Settings.from_env(env_file=str(env_file))

    assert settings.bot_name == "review-bot"


def test_secret_redacting_filter():
    record = logging.LogRecord(
        "reviewflow", logging.INFO, __file__, 1, "token %s in %s", ("ghp_abc", {"auth": "ghp_abc"}), None
    )

    SecretRedactingFilter(["ghp_abc", ""]).filter(record)

    assert record.getMessage() == "token [REDACTED_SECRET] in {'auth': '[REDACTED_SECRET]'}"
