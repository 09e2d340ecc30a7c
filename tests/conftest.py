import pytest

import trellis.persistence as persistence
from trellis.workflow import clear_workflow_registry


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch):
    """Each test starts with no registered workflow names and no cached repository."""
    clear_workflow_registry()
    persistence.reset_repository()
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TRELLIS_DATABASE_URL", raising=False)
    monkeypatch.delenv("TRELLIS_CONFIG", raising=False)
    yield
    clear_workflow_registry()
    persistence.reset_repository()


@pytest.fixture
def collect():
    async def _collect(events):
        return [event async for event in events]

    return _collect
