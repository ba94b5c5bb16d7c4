import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from bloombrain.library import ExerciseLibrary
from bloombrain.provider import ExerciseProvider
from bloombrain.store import LocalStore, ProgressLedger

from fakes import TimerFactory


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def library():
    return ExerciseLibrary.from_json()


@pytest.fixture
def ledger(tmp_path):
    return ProgressLedger(LocalStore(tmp_path / "bloombrain.sqlite"))


@pytest.fixture
def make_provider(library):
    def _make(client):
        return ExerciseProvider(client, library=library, clock=lambda: 1700000000000)

    return _make
