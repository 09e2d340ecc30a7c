import uuid

import pytest

import trellis.persistence as persistence
from trellis import SerializedError, Status
from trellis.persistence import (
    InMemoryRunRepository,
    SQLiteRunRepository,
    get_repository,
)


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "memory":
        yield InMemoryRunRepository()
        return
    repository = SQLiteRunRepository(tmp_path / "runs.db")
    yield repository
    repository.close()


@pytest.mark.asyncio
async def test_repository_crud(repo):
    run_id = str(uuid.uuid4())

    await repo.create_run(run_id, "arithmetic", {"value": 2})
    await repo.record_step(run_id, "double", {"value": 2}, {"value": 4}, Status.COMPLETE)
    await repo.update_run(run_id, context={"value": 4})
    await repo.update_run(run_id, status=Status.COMPLETE)

    run = await repo.get_run(run_id)
    assert run is not None
    assert run.workflow_name == "arithmetic"
    assert run.initial_context == {"value": 2}
    assert run.context == {"value": 4}
    assert run.status == Status.COMPLETE
    assert run.error is None
    assert len(run.steps) == 1
    step = run.steps[0]
    assert step.title == "double"
    assert step.previous_context == {"value": 2}
    assert step.new_context == {"value": 4}
    assert step.status == Status.COMPLETE


@pytest.mark.asyncio
async def test_repository_stores_errors(repo):
    run_id = str(uuid.uuid4())
    error = SerializedError(name="ValueError", message="boom", stack="Traceback...")

    await repo.create_run(run_id, "failing", {})
    await repo.record_step(run_id, "explode", {}, {}, Status.ERROR, error=error)
    await repo.update_run(run_id, status=Status.ERROR, error=error)

    run = await repo.get_run(run_id)
    assert run.status == Status.ERROR
    assert run.error == error
    assert run.steps[0].error == error


@pytest.mark.asyncio
async def test_list_runs_filters_by_workflow(repo):
    first, second = str(uuid.uuid4()), str(uuid.uuid4())
    await repo.create_run(first, "alpha", {})
    await repo.create_run(second, "beta", {})

    all_ids = [run.id for run in await repo.list_runs()]
    beta_ids = [run.id for run in await repo.list_runs("beta")]

    assert all_ids == [first, second]
    assert beta_ids == [second]


@pytest.mark.asyncio
async def test_completed_steps_skip_failed_rows(repo):
    run_id = str(uuid.uuid4())
    await repo.create_run(run_id, "partial", {"value": 2})
    await repo.record_step(run_id, "double", {"value": 2}, {"value": 4}, Status.COMPLETE)
    await repo.record_step(
        run_id,
        "explode",
        {"value": 4},
        {"value": 4},
        Status.ERROR,
        error=SerializedError(name="ValueError", message="boom"),
    )

    completed = await repo.completed_steps(run_id)

    assert [(s.title, s.status, s.context) for s in completed] == [
        ("double", Status.COMPLETE, {"value": 4})
    ]
    assert await repo.completed_steps("missing") == []


@pytest.mark.asyncio
async def test_get_run_returns_none_for_unknown_id(repo):
    assert await repo.get_run("missing") is None


def test_get_repository_defaults_to_memory():
    repo = get_repository()

    assert isinstance(repo, InMemoryRunRepository)
    assert get_repository() is repo


def test_get_repository_selects_sqlite_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("TRELLIS_DATABASE_URL", f"sqlite://{tmp_path / 'env.db'}")

    repo = get_repository()

    assert isinstance(repo, SQLiteRunRepository)
    assert repo.db_path == str(tmp_path / "env.db")
    repo.close()


def test_get_repository_rejects_unknown_backends():
    with pytest.raises(ValueError, match="Unsupported database backend"):
        get_repository("mysql://localhost/runs")
    assert persistence._repository_instance is None


def test_reset_repository_rereads_the_environment(tmp_path, monkeypatch):
    memory = get_repository()
    monkeypatch.setenv("TRELLIS_DATABASE_URL", f"sqlite://{tmp_path / 'after.db'}")

    assert get_repository() is memory

    persistence.reset_repository()
    repo = get_repository()

    assert isinstance(repo, SQLiteRunRepository)
    repo.close()
