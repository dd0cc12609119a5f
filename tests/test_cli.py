import yaml
from unittest.mock import patch

from reviewflow.cli import main


def test_check_config_ok(tmp_path, capsys, config_data):
    path = tmp_path / "reviewflow.yml"
    path.write_text(yaml.safe_dump(config_data))

    assert main(["check-config", str(path)]) == 0
    assert "OK (acme)" in capsys.readouterr().out


def test_check_config_reports_errors(tmp_path, capsys, config_data):
    config_data["orgs"]["acme"]["wait_for_groups"] = {"design": ["qa"]}
    path = tmp_path / "reviewflow.yml"
    path.write_text(yaml.safe_dump(config_data))

    assert main(["check-config", str(path)]) == 1
    out = capsys.readouterr().out
    assert "1 error(s)" in out
    assert "unknown group 'qa'" in out


def test_serve_applies_command_line_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("WEBHOOK_PORT", "4000")
    monkeypatch.chdir(tmp_path)

    with patch("reviewflow.cli.serve", return_value=0) as serve:
        assert main(["serve", "--port", "5050", "--config", "custom.yml"]) == 0

    settings = serve.call_args.args[0]
    assert settings.webhook_port == 5050
    assert settings.config_path == "custom.yml"


def test_no_command_prints_help(capsys):
    assert main([]) == 2
    assert "check-config" in capsys.readouterr().out
