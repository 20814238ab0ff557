"""
Root conftest.py: sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without a PostGIS server.
"""

import json
import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables so AppConfig.from_environment()
    succeeds without a real database.
    """
    defaults = {
        "POSTGIS_HOST": "localhost",
        "POSTGIS_DATABASE": "testdb",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture
def locality_body():
    """A complete WOF locality feature body."""
    from tests.factories.feature_factories import make_feature_body
    return make_feature_body()


@pytest.fixture
def write_feature(tmp_path):
    """Factory fixture: write a feature body to <tmp>/<id>.geojson and return the path."""
    def _write(body, name=None, directory=None):
        directory = directory or tmp_path
        os.makedirs(directory, exist_ok=True)
        name = name or f"{body['properties']['wof:id']}.geojson"
        path = os.path.join(str(directory), name)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(body, f)
        return path
    return _write


@pytest.fixture
def fake_pool():
    """A FakeConnectionPool recording every statement."""
    from tests.factories.fake_psycopg import FakeConnectionPool
    return FakeConnectionPool()
