"""Tests for configuration loading and validation."""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from minerva import ConfigurationError, FormationPreset, MinervaConfig, default_config, load_config
from minerva.config import TimeControlMode, resolve_config_path


SAMPLE_TOML = """
[emulator]
serial = "emulator-5554"
fixed_resolution = [1080, 1920]

[vision]
confidence_threshold = 0.9

[network]
websocket_port = 4000

[ops]
log_level = "DEBUG"

[orchestrator]
max_retries = 5
formation = "상마상마"

[orchestrator.time_control]
mode = "rapid"
base_ms = 300000
increment_ms = 5000
"""


class TestMinervaConfig:
    """Test config parsing."""

    def test_defaults(self):
        config = MinervaConfig()

        assert config.orchestrator.max_retries == 1
        assert config.orchestrator.formation == FormationPreset.MASANG_SANG_MA
        assert config.emulator.fixed_resolution is None
        assert config.ops.log_level == "info"

    def test_default_config(self):
        config = default_config()

        assert config.emulator.fixed_resolution == (1080, 1920)
        assert config.vision.capture_dir == "captures"

    def test_from_toml(self):
        config = MinervaConfig.from_toml(SAMPLE_TOML)

        assert config.emulator.serial == "emulator-5554"
        assert config.emulator.fixed_resolution == (1080, 1920)
        assert config.vision.confidence_threshold == 0.9
        assert config.network.websocket_port == 4000
        assert config.ops.log_level == "debug"
        assert config.orchestrator.max_retries == 5
        assert config.orchestrator.formation == FormationPreset.SANG_MASANG_MA
        assert config.orchestrator.time_control.mode == TimeControlMode.RAPID
        assert config.orchestrator.time_control.increment_ms == 5000

    def test_missing_sections_use_defaults(self):
        config = MinervaConfig.from_toml("[ops]\nlog_level = \"warning\"\n")

        assert config.orchestrator.max_retries == 1
        assert config.network.websocket_port == 3000

    @pytest.mark.parametrize("toml_text", [
        "[orchestrator]\nmax_retries = 0\n",
        "[orchestrator]\nmax_retries = 256\n",
        "[orchestrator]\nformation = \"nope\"\n",
        "[vision]\nconfidence_threshold = 1.5\n",
        "[network]\nwebsocket_port = 0\n",
        "[ops]\nlog_level = \"loud\"\n",
        "[orchestrator\n",
    ])
    def test_invalid_values(self, toml_text):
        with pytest.raises(ConfigurationError):
            MinervaConfig.from_toml(toml_text)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            MinervaConfig.from_file(str(tmp_path / "absent.toml"))

    def test_overrides(self):
        config = MinervaConfig().with_overrides(max_retries=7, formation="SANG_MA_MA_SANG")

        assert config.orchestrator.max_retries == 7
        assert config.orchestrator.formation == FormationPreset.SANG_MA_MA_SANG

    def test_invalid_override(self):
        with pytest.raises(ConfigurationError):
            MinervaConfig().with_overrides(max_retries=0)

    def test_summary(self):
        assert MinervaConfig().summary() == "turns 1 | formation 마상상마"


class TestLoadConfig:
    """Test path resolution and fallback."""

    def test_cli_path_wins(self, monkeypatch):
        monkeypatch.setenv("MINERVA_CONFIG", "from_env.toml")

        assert resolve_config_path("cli.toml") == "cli.toml"
        assert resolve_config_path() == "from_env.toml"

    def test_default_path(self, monkeypatch):
        monkeypatch.delenv("MINERVA_CONFIG", raising=False)

        assert resolve_config_path() == "configs/dev.toml"

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "minerva.toml"
        path.write_text(SAMPLE_TOML, encoding="utf-8")

        config = load_config(str(path))

        assert config.orchestrator.max_retries == 5

    def test_fallback_on_missing_file(self, tmp_path):
        config = load_config(str(tmp_path / "absent.toml"))

        assert config == default_config()

    def test_fallback_on_invalid_file(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[orchestrator]\nmax_retries = 0\n", encoding="utf-8")

        config = load_config(str(path))

        assert config.orchestrator.max_retries == 1
        assert config.emulator.fixed_resolution == (1080, 1920)
