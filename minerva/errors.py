"""Error taxonomy shared by every Minerva subsystem."""


class MinervaError(Exception):
    """Base class for all Minerva failures."""

    subsystem = "minerva"

    def __str__(self) -> str:
        message = super().__str__()
        return f"{self.subsystem} error: {message}"


class ConfigurationError(MinervaError):
    subsystem = "configuration"


class ControllerError(MinervaError):
    subsystem = "controller"


class VisionError(MinervaError):
    subsystem = "vision"


class EngineError(MinervaError):
    subsystem = "engine"


class NetworkError(MinervaError):
    subsystem = "network"


class OrchestratorError(MinervaError):
    subsystem = "orchestrator"


class OpsError(MinervaError):
    subsystem = "operational"


class BoardError(MinervaError):
    """Raised when a board mutation cannot be applied."""

    subsystem = "board"
