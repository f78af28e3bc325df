"""Minerva: automated Janggi play on an emulated device."""

from .board import Side, PieceKind, Square, Piece, BoardDiff, BoardState, InferredMove
from .game import (
    Move, MoveCandidate, GamePhase, GameClocks, GameSnapshot,
    EngineDecision, TurnContext,
)
from .movegen import MoveGenerator, PIECE_VALUES, QUIET_MOVE_SCORE
from .engine import GameEngine, RuleBasedEngine, NullEngine
from .errors import (
    MinervaError, ConfigurationError, ControllerError, VisionError,
    EngineError, NetworkError, OrchestratorError, OpsError, BoardError,
)
from .config import (
    MinervaConfig, EmulatorConfig, VisionConfig, EngineConfig,
    NetworkConfig, OpsConfig, OrchestratorConfig, TimeControl,
    default_config, load_config,
)
from .ui import Point, FormationPreset, StartFlowStep, square_to_point
from .controller import (
    Tap, Swipe, KeyEvent, ControllerMetrics, DeviceController, MockController,
)
from .vision import ImageFrame, RecognitionHints, BoardRecognizer, MockRecognizer
from .events import (
    EventKind, LifecyclePhase, SystemEvent,
    LifecycleEvent, BoardEvent, EngineEvent, TelemetryEvent,
    NetworkEvent, OpsEvent, UnknownEvent,
)
from .network import RealtimeServer, LocalServer, Subscription
from .ops import TelemetryStore, init_logging
from .orchestrator import Orchestrator, MatchState

__all__ = [
    # Board and game
    'Side', 'PieceKind', 'Square', 'Piece', 'BoardDiff', 'BoardState', 'InferredMove',
    'Move', 'MoveCandidate', 'GamePhase', 'GameClocks', 'GameSnapshot',
    'EngineDecision', 'TurnContext',
    # Decision
    'MoveGenerator', 'PIECE_VALUES', 'QUIET_MOVE_SCORE',
    'GameEngine', 'RuleBasedEngine', 'NullEngine',
    # Errors
    'MinervaError', 'ConfigurationError', 'ControllerError', 'VisionError',
    'EngineError', 'NetworkError', 'OrchestratorError', 'OpsError', 'BoardError',
    # Config
    'MinervaConfig', 'EmulatorConfig', 'VisionConfig', 'EngineConfig',
    'NetworkConfig', 'OpsConfig', 'OrchestratorConfig', 'TimeControl',
    'default_config', 'load_config',
    # Device and vision
    'Point', 'FormationPreset', 'StartFlowStep', 'square_to_point',
    'Tap', 'Swipe', 'KeyEvent', 'ControllerMetrics', 'DeviceController', 'MockController',
    'ImageFrame', 'RecognitionHints', 'BoardRecognizer', 'MockRecognizer',
    # Events
    'EventKind', 'LifecyclePhase', 'SystemEvent',
    'LifecycleEvent', 'BoardEvent', 'EngineEvent', 'TelemetryEvent',
    'NetworkEvent', 'OpsEvent', 'UnknownEvent',
    'RealtimeServer', 'LocalServer', 'Subscription',
    'TelemetryStore', 'init_logging',
    # Orchestration
    'Orchestrator', 'MatchState',
]
