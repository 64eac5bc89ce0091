"""Tests for the worker CLI."""

import json

import pytest

from alertbridge import worker_cli

from conftest import alert_message, code_scanning_alert


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(worker_cli, "configure_logging", lambda **kwargs: None)


class TestProcessCommand:
    def test_invalid_alert_reported(self, tmp_path, capsys):
        raw = code_scanning_alert()
        del raw["number"]
        path = tmp_path / "message.json"
        path.write_text(json.dumps(alert_message(raw)))

        exit_code = worker_cli.main(["--config-dir", str(tmp_path), "process", str(path)])

        assert exit_code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["action"] == "invalid"
        assert result["correlation_id"] == "delivery-1"

    def test_filtered_by_file_config(self, tmp_path, capsys):
        (tmp_path / "acme.json").write_text(json.dumps({"org": "acme", "enabled": False}))
        path = tmp_path / "message.json"
        path.write_text(json.dumps(alert_message(code_scanning_alert())))

        worker_cli.main(["--config-dir", str(tmp_path), "process", str(path)])

        assert json.loads(capsys.readouterr().out)["action"] == "disabled"

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            worker_cli.main([])
