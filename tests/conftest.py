"""
Shared pytest fixtures for bracket tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset (skips randomized edit sequences)
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.models import BracketOptions
from brackets.topology import build_topology


@pytest.fixture
def client():
    """Create a test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the service at an empty temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()

    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'BRACKET_FILE', str(data_dir / "bracket.yaml"))
    monkeypatch.setattr(app_module, 'SETTINGS_FILE', str(data_dir / "settings.yaml"))

    return data_dir


@pytest.fixture
def four_teams():
    """Two full team pairs."""
    return [['A', 'B'], ['C', 'D']]


@pytest.fixture
def eight_teams():
    """Four full team pairs."""
    return [['A', 'B'], ['C', 'D'], ['E', 'F'], ['G', 'H']]


@pytest.fixture
def build():
    """Build a topology with option flags given as keyword arguments."""
    def _build(teams, results=None, **flags):
        return build_topology(teams, results, BracketOptions(**flags))
    return _build
