"""BloomBrain activity engine package."""

from .config import Settings
from .dashboard import ChildDashboard, GuardianDashboard
from .game import GameState, GameStateMachine, Outcome
from .http_server import main as serve, run_http_server
from .provider import ExerciseProvider
from .server import BloomBrainServer

__all__ = [
    "Settings",
    "BloomBrainServer",
    "ChildDashboard",
    "ExerciseProvider",
    "GameState",
    "GameStateMachine",
    "GuardianDashboard",
    "Outcome",
    "run_http_server",
    "serve",
]
