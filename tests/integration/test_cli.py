# =============================================================================
# POLYMARKET APPROVALS - CLI TESTS
# =============================================================================

import json
from unittest.mock import patch

import pytest

from shared.config import ToolConfig
from polymarket_tool import run


@pytest.fixture
def tool_cls():
    with patch("polymarket_tool.run.setup_logging"), \
            patch("polymarket_tool.run.load_env"), \
            patch("polymarket_tool.run.PolymarketTool") as mock_cls:
        mock_cls.return_value.execute.return_value = {"ok": True, "status": "ok"}
        yield mock_cls


def _stdout_json(capsys):
    return json.loads(capsys.readouterr().out)


class TestMain:

    def test_ok_response_exits_zero(self, tool_cls, tmp_path, capsys):
        code = run.main([
            "--action", "market",
            "--params", '{"marketSlug": "will-it-rain-in-berlin"}',
            "--config", str(tmp_path / "missing.yaml"),
            "--session", "chat-1",
            "--no-log-file",
        ])

        assert code == 0
        assert _stdout_json(capsys) == {"ok": True, "status": "ok"}
        tool_cls.return_value.execute.assert_called_once_with(
            {"marketSlug": "will-it-rain-in-berlin", "action": "market"}
        )
        config = tool_cls.call_args[0][0]
        context = tool_cls.call_args[1]["context"]
        assert config == ToolConfig()
        assert context.session_key == "chat-1"
        assert context.sandboxed is False

    def test_action_flag_overrides_params(self, tool_cls, tmp_path):
        run.main(["-a", "status", "-p", '{"action": "cancel_all"}', "-c", str(tmp_path / "x.yaml")])
        assert tool_cls.return_value.execute.call_args[0][0]["action"] == "status"

    def test_sandboxed_flag(self, tool_cls, tmp_path):
        run.main(["-a", "status", "--sandboxed", "-c", str(tmp_path / "x.yaml")])
        assert tool_cls.call_args[1]["context"].sandboxed is True

    def test_error_response_exits_one(self, tool_cls, tmp_path, capsys):
        tool_cls.return_value.execute.return_value = {
            "ok": False, "error": {"type": "trading_disabled", "message": "Trading disabled"},
        }
        assert run.main(["-a", "place_order", "-c", str(tmp_path / "x.yaml")]) == 1
        assert _stdout_json(capsys)["error"]["type"] == "trading_disabled"

    @pytest.mark.parametrize("params", ["{not json", "[1, 2]"])
    def test_bad_params_exit_two(self, tool_cls, params, capsys):
        assert run.main(["-a", "status", "-p", params]) == 2
        assert _stdout_json(capsys)["error"]["type"] == "invalid_request"
        tool_cls.assert_not_called()

    def test_invalid_config_exits_one(self, tool_cls, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("polymarket: [unclosed\n", encoding="utf-8")
        assert run.main(["-a", "status", "-c", str(path)]) == 1
        assert "Invalid config file" in _stdout_json(capsys)["error"]["message"]
        tool_cls.assert_not_called()

    def test_action_required(self, tool_cls):
        with pytest.raises(SystemExit):
            run.main([])
