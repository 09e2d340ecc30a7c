import asyncio

import pytest

from trellis import EventType, StepEventType, merge_step, on, step, workflow
from trellis.events import StepSubscription, WorkflowSubscription


def test_on_resolves_workflow_and_step_kinds():
    workflow_sub = on("workflow:update", print)
    step_sub = on("step:error", print)

    assert isinstance(workflow_sub, WorkflowSubscription)
    assert workflow_sub.kind == EventType.UPDATE
    assert isinstance(step_sub, StepSubscription)
    assert step_sub.kind == StepEventType.ERROR


def test_on_rejects_unknown_kinds():
    with pytest.raises(ValueError, match="Unknown event kind"):
        on("workflow:paused", print)


def test_on_rejects_non_callables():
    with pytest.raises(TypeError):
        on("workflow:start", "not callable")


def test_blocks_must_match_their_scope():
    with pytest.raises(TypeError):
        workflow("mixed-scope", on("step:complete", print))
    with pytest.raises(TypeError):
        step("wrong handler", lambda ctx: None, on("workflow:complete", print))


@pytest.mark.asyncio
async def test_handlers_run_in_registration_order_before_event_is_yielded():
    log = []
    wf = workflow(
        "ordered-handlers",
        merge_step("one", lambda ctx: {"one": 1}),
        on("workflow:start", lambda e: log.append(("first", e.type))),
        on("workflow:start", lambda e: log.append(("second", e.type))),
        on("workflow:update", lambda e: log.append(("update", e.completed_step.title))),
        on("workflow:complete", lambda e: log.append(("complete", e.new_context))),
    )

    async for event in wf.run(initial_context={}):
        log.append(("yielded", event.type))

    assert log == [
        ("first", EventType.START),
        ("second", EventType.START),
        ("yielded", EventType.START),
        ("update", "one"),
        ("yielded", EventType.UPDATE),
        ("complete", {"one": 1}),
        ("yielded", EventType.COMPLETE),
    ]


@pytest.mark.asyncio
async def test_async_handlers_are_awaited_one_at_a_time():
    log = []

    async def slow(event):
        log.append("slow:start")
        await asyncio.sleep(0.01)
        log.append("slow:end")

    async def fast(event):
        log.append("fast")

    wf = workflow("async-handlers", on("workflow:start", slow), on("workflow:start", fast))

    async for _ in wf.run(initial_context={}):
        pass

    assert log == ["slow:start", "slow:end", "fast"]


@pytest.mark.asyncio
async def test_error_handlers_receive_error_event(collect):
    errors = []

    def explode(ctx):
        raise ValueError("boom")

    wf = workflow(
        "error-handlers",
        merge_step("explode", explode),
        on("workflow:error", errors.append),
    )

    await collect(wf.run(initial_context={}))

    assert len(errors) == 1
    assert errors[0].error.name == "ValueError"


@pytest.mark.asyncio
async def test_workflow_handler_failure_stops_the_run():
    calls = []

    def broken(event):
        raise RuntimeError("handler failed")

    wf = workflow(
        "broken-handler",
        merge_step("one", lambda ctx: calls.append("one") or {"one": 1}),
        merge_step("two", lambda ctx: calls.append("two") or {"two": 2}),
        on("workflow:update", broken),
    )

    with pytest.raises(RuntimeError, match="handler failed"):
        async for _ in wf.run(initial_context={}):
            pass

    assert calls == ["one"]


@pytest.mark.asyncio
async def test_step_handler_failure_propagates_through_the_run():
    def broken(event):
        raise RuntimeError("step handler failed")

    wf = workflow(
        "broken-step-handler",
        merge_step("one", lambda ctx: {"one": 1}, on("step:complete", broken)),
    )

    with pytest.raises(RuntimeError, match="step handler failed"):
        async for _ in wf.run(initial_context={}):
            pass
