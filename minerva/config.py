"""Runtime configuration models and loading."""

import logging
import os
import tomllib
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .ui import FormationPreset


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/dev.toml"
CONFIG_ENV_VAR = "MINERVA_CONFIG"
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class EmulatorConfig(BaseModel):
    """Device connection settings. socket and adb_path are carried for config-file compatibility."""

    serial: str = "127.0.0.1:5555"
    socket: str = "127.0.0.1:5555"
    fixed_resolution: Optional[Tuple[int, int]] = None  # (width, height)
    adb_path: Optional[str] = None


class VisionConfig(BaseModel):
    """Recognizer settings, carried for config-file compatibility; the mock recognizer reads none of them."""

    template_dir: str = "assets/templates"
    confidence_threshold: float = Field(default=0.95, ge=0.0, le=1.0)
    refresh_interval_ms: int = Field(default=500, gt=0)
    capture_dir: Optional[str] = None
    tile_capture_dir: Optional[str] = None


class EngineConfig(BaseModel):
    """Engine tuning, carried for config-file compatibility (the rule-based engine searches one ply)."""

    threads: int = Field(default=1, ge=1)
    max_depth: int = Field(default=1, ge=1, le=255)
    nnue_path: Optional[str] = None


class NetworkConfig(BaseModel):
    """Relay bind address and port. auth_token is carried for config-file compatibility."""

    bind_addr: str = "127.0.0.1"
    websocket_port: int = Field(default=3000, ge=1, le=65535)
    auth_token: Optional[str] = None


class OpsConfig(BaseModel):
    log_level: str = "info"
    telemetry_dir: str = "telemetry"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if value.lower() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value.lower()


class TimeControlMode(Enum):
    BLITZ = "blitz"
    RAPID = "rapid"
    CLASSIC = "classic"
    CUSTOM = "custom"


class TimeControl(BaseModel):
    mode: TimeControlMode = TimeControlMode.BLITZ
    base_ms: int = Field(default=10 * 60 * 1000, ge=0)
    increment_ms: int = Field(default=0, ge=0)
    max_depth_hint: Optional[int] = 10

    @classmethod
    def blitz(cls) -> "TimeControl":
        return cls(mode=TimeControlMode.BLITZ, base_ms=10 * 60 * 1000, increment_ms=0, max_depth_hint=10)


class OrchestratorConfig(BaseModel):
    """Match settings. time_control is carried for config-file compatibility; turns are not clocked."""

    time_control: TimeControl = Field(default_factory=TimeControl.blitz)
    # Number of turns played per run (not a retry count)
    max_retries: int = Field(default=1, ge=1, le=255)
    formation: FormationPreset = FormationPreset.MASANG_SANG_MA

    @field_validator("formation", mode="before")
    @classmethod
    def _parse_formation(cls, value):
        if isinstance(value, str):
            return FormationPreset.parse(value)
        return value


class MinervaConfig(BaseModel):
    emulator: EmulatorConfig = Field(default_factory=EmulatorConfig)
    vision: VisionConfig = Field(default_factory=VisionConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    ops: OpsConfig = Field(default_factory=OpsConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)

    @classmethod
    def from_toml(cls, text: str) -> "MinervaConfig":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"invalid TOML: {e}") from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_file(cls, path: str) -> "MinervaConfig":
        """Read and validate a TOML config file.

        Raises:
            ConfigurationError: if the file is missing, malformed or invalid
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ConfigurationError(f"cannot read {path}: {e}") from e
        return cls.from_toml(text)

    def with_overrides(
        self,
        max_retries: Optional[int] = None,
        formation: Optional[str] = None,
    ) -> "MinervaConfig":
        """Copy with CLI overrides applied and re-validated."""
        data = self.model_dump()
        if max_retries is not None:
            data["orchestrator"]["max_retries"] = max_retries
        if formation is not None:
            data["orchestrator"]["formation"] = formation
        try:
            return MinervaConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    def summary(self) -> str:
        return (
            f"turns {self.orchestrator.max_retries} | "
            f"formation {self.orchestrator.formation.value}"
        )


def default_config() -> MinervaConfig:
    return MinervaConfig(
        emulator=EmulatorConfig(fixed_resolution=(1080, 1920)),
        vision=VisionConfig(capture_dir="captures", tile_capture_dir="captures/tiles"),
    )


def resolve_config_path(cli_path: Optional[str] = None) -> str:
    return cli_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH


def load_config(cli_path: Optional[str] = None) -> MinervaConfig:
    """Load the config, falling back to defaults when it is missing or invalid."""
    path = resolve_config_path(cli_path)
    try:
        return MinervaConfig.from_file(path)
    except ConfigurationError as e:
        logger.warning("Config file '%s' unusable (%s); using defaults", path, e)
        return default_config()
