"""Tests for config.py and uwu/shell.py."""
import pytest
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import AppConfig, load_config
from uwu.agents.base import ConfigurationError
from uwu.shell import SHELL_NOT_FOUND, detect_os, detect_shell, run_command


# ---------------------------------------------------------------------------
# AppConfig
# ---------------------------------------------------------------------------

class TestAppConfig:
    def test_defaults(self):
        cfg = AppConfig(gemini_api_key="k")
        assert cfg.provider == "gemini"
        assert cfg.bedrock_model == "amazon.nova-lite-v1:0"
        assert cfg.allow_regenerate is True

    def test_set_string(self):
        cfg = AppConfig()
        cfg.set("ollama-model", " mistral ")
        assert cfg.ollama_model == "mistral"

    @pytest.mark.parametrize("raw,expected", [("false", False), ("0", False), ("yes", True), ("1", True)])
    def test_set_bool(self, raw, expected):
        cfg = AppConfig()
        cfg.set("allow_regenerate", raw)
        assert cfg.allow_regenerate is expected

    def test_vendor_env_var_beats_key_file(self, tmp_path, monkeypatch):
        (tmp_path / "openai.key").write_text("from-file\n")
        monkeypatch.setattr("config.STATE_DIR", tmp_path)
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        assert AppConfig().openai_api_key == "from-env"

    def test_key_file_used_without_env_var(self, tmp_path, monkeypatch):
        (tmp_path / "openai.key").write_text("from-file\n")
        monkeypatch.setattr("config.STATE_DIR", tmp_path)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert AppConfig().openai_api_key == "from-file"

    def test_set_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration key"):
            AppConfig().set("colour", "blue")


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------

class TestLoadConfig:
    def test_reads_plain_config_file(self, tmp_path):
        path = tmp_path / "config"
        path.write_text(
            "# uwu settings\n"
            "provider ollama\n"
            "\n"
            "ollama-host http://gpu-box:11434\n"
            "ollama_model codellama\n"
        )
        cfg = load_config(path, environ={})
        assert cfg.provider == "ollama"
        assert cfg.ollama_host == "http://gpu-box:11434"
        assert cfg.ollama_model == "codellama"

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("provider ollama\n")
        cfg = load_config(path, environ={"UWU_PROVIDER": "bedrock", "UWU_BEDROCK_REGION": "eu-west-1"})
        assert cfg.provider == "bedrock"
        assert cfg.bedrock_region == "eu-west-1"

    def test_unknown_key_reports_line(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("provider gemini\nflavour vanilla\n")
        with pytest.raises(ConfigurationError, match=":2:"):
            load_config(path, environ={})

    def test_explicit_missing_file_is_error(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_config(tmp_path / "nope", environ={})

    def test_default_file_may_be_missing(self, tmp_path):
        with patch("config.DEFAULT_CONFIG_FILE", tmp_path / "absent"):
            cfg = load_config(environ={"UWU_DEBUG": "true"})
        assert cfg.debug is True


# ---------------------------------------------------------------------------
# Shell helpers
# ---------------------------------------------------------------------------

class TestShell:
    def test_detect_shell_basename(self):
        assert detect_shell({"SHELL": "/usr/local/bin/fish"}) == "fish"

    def test_detect_shell_default(self):
        assert detect_shell({}) == "sh"

    def test_detect_os_is_lowercase(self):
        with patch("uwu.shell.platform.system", return_value="Darwin"):
            assert detect_os() == "darwin"

    def test_run_command_returns_exit_code(self):
        with patch("uwu.shell.subprocess.run") as run:
            run.return_value.returncode = 3
            assert run_command("false", "bash") == 3
        run.assert_called_once_with(["bash", "-c", "false"], check=False)

    def test_run_command_missing_shell(self):
        with patch("uwu.shell.subprocess.run", side_effect=FileNotFoundError("no-such-shell")):
            assert run_command("ls", "no-such-shell") == SHELL_NOT_FOUND
