"""Example showing a persisted run that fails, then resumes after the failure."""

import asyncio
import os

from trellis import PersistenceAdapter, Runner, get_repository, merge_step, workflow

state = {"ready": False}


def check_ready(ctx):
    if not state["ready"]:
        raise RuntimeError("downstream service not ready")
    return {"checked": True}


flaky = workflow(
    "flaky-service",
    merge_step("fetch", lambda ctx: {"items": [1, 2, 3]}),
    merge_step("check", check_ready),
    merge_step("total", lambda ctx: {"total": sum(ctx["items"])}),
)


async def main():
    # Uses TRELLIS_DATABASE_URL when set, otherwise an in-memory history
    repository = get_repository(os.getenv("TRELLIS_DATABASE_URL"))
    runner = Runner([PersistenceAdapter(repository)], verbose=True)

    failed = await runner.run(flaky, {})
    print(f"❌ Run {failed.run_id} stopped: {failed.error.message}")

    state["ready"] = True
    completed = await runner.run(
        flaky,
        {},
        initial_completed_steps=await repository.completed_steps(failed.run_id),
        run_id=failed.run_id,
    )
    print(f"✅ Run {completed.run_id} resumed: {completed.new_context}")


if __name__ == "__main__":
    asyncio.run(main())
