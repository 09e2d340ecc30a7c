import pytest

from trellis import EventType, WorkflowFailedError, merge_step, reduce, step, subworkflow, workflow


@pytest.mark.asyncio
async def test_subworkflow_result_feeds_the_parent(collect):
    child = workflow("child", merge_step("square", lambda ctx: {"n": ctx["n"] ** 2}))
    parent = workflow(
        "parent",
        step(
            "run child",
            subworkflow(child, {"n": 3}),
            reduce(lambda result, ctx: {**ctx, "child": result}),
        ),
    )

    events = await collect(parent.run(initial_context={"label": "demo"}))

    assert events[-1].new_context == {"label": "demo", "child": {"n": 9}}


@pytest.mark.asyncio
async def test_subworkflow_context_can_be_computed_lazily(collect):
    calls = []

    def seed():
        calls.append("seed")
        return {"n": len(calls)}

    child = workflow("lazy-child", merge_step("noop", lambda ctx: None))
    parent = workflow("lazy-parent", merge_step("run child", subworkflow(child, seed)))

    first = await collect(parent.run(initial_context={}))
    second = await collect(parent.run(initial_context={}))

    assert first[-1].new_context == {"n": 1}
    assert second[-1].new_context == {"n": 2}


@pytest.mark.asyncio
async def test_failing_subworkflow_fails_the_parent_step(collect):
    def explode(ctx):
        raise ValueError("child exploded")

    child = workflow("failing-child", merge_step("explode", explode))
    parent = workflow("failing-parent", merge_step("run child", subworkflow(child, {})))

    events = await collect(parent.run(initial_context={}))

    assert events[-1].type == EventType.ERROR
    assert events[-1].error.name == "WorkflowFailedError"
    assert events[-1].error.message == "child exploded"


@pytest.mark.asyncio
async def test_workflow_failed_error_keeps_the_child_error():
    def explode(ctx):
        raise ValueError("child exploded")

    child = workflow("raw-child", merge_step("explode", explode))

    with pytest.raises(WorkflowFailedError) as exc_info:
        await subworkflow(child, {})({})

    assert exc_info.value.error_name == "ValueError"
