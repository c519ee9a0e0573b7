"""Shared pytest fixtures for optmm engine tests."""

import sys
from pathlib import Path

import pytest

# Add src and the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from optmm.config.loader import ENV_MAPPING

# Import all fixtures for global availability
from tests.fixtures.market_fixtures import *


@pytest.fixture(autouse=True)
def clean_optmm_env(monkeypatch):
    """
    Remove OPTMM_* overrides inherited from the shell.

    Config tests set the variables they need explicitly via monkeypatch.
    """
    for env_var in ENV_MAPPING:
        monkeypatch.delenv(env_var, raising=False)
    yield
