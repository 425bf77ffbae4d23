import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from voice_relay.core.config import settings
from voice_relay.main import app as fastapi_app
from voice_relay.services.session_config.flows import FlowStore
from voice_relay.services.session_config.resolver import SessionConfigResolver

# Enable debug mode for tests
settings.DEBUG = True


@pytest.fixture
def flows_dir(tmp_path) -> Path:
    """A flows directory with one small flowchart per task and a profile seed."""
    for task_id in (1, 2, 3):
        (tmp_path / f"task{task_id}.mmd").write_text(
            f"flowchart TD\n    A[Task {task_id} start] --> B[Task {task_id} end]\n",
            encoding="utf-8",
        )
    (tmp_path / "profile.json").write_text(
        json.dumps({"preferred_name": "Maggie", "phone_number": "+1 555 0100"}),
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def resolver(flows_dir) -> SessionConfigResolver:
    return SessionConfigResolver(FlowStore(flows_dir), timezone_name="America/New_York")


@pytest.fixture
def client():
    """TestClient with per-test app state cleared."""
    yield TestClient(fastapi_app)
    for attr in ("upstream_factory", "resolver"):
        if hasattr(fastapi_app.state, attr):
            delattr(fastapi_app.state, attr)
