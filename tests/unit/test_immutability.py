"""Values crossing the engine boundary never share mutable state."""

import pytest

from trellis import EventType, merge_step, on, reduce, step, workflow


@pytest.mark.asyncio
async def test_action_mutating_its_context_does_not_leak(collect):
    def mutate(ctx):
        ctx["value"] = 999
        ctx["nested"]["items"].append("leak")
        return None

    wf = workflow(
        "mutating-action",
        step("mutate", mutate),
        merge_step("read", lambda ctx: {"seen": ctx["value"]}),
    )

    events = await collect(wf.run(initial_context={"value": 1, "nested": {"items": []}}))

    assert events[1].new_context == {"value": 1, "nested": {"items": []}}
    assert events[-1].new_context["seen"] == 1


@pytest.mark.asyncio
async def test_reducer_mutating_its_context_does_not_touch_previous_record(collect):
    def reducer(result, ctx):
        ctx["list"].append(result)
        return ctx

    wf = workflow(
        "mutating-reducer",
        step("first", lambda ctx: 1, reduce(reducer)),
        step("second", lambda ctx: 2, reduce(reducer)),
    )

    events = await collect(wf.run(initial_context={"list": []}))
    final = events[-1]

    assert final.steps[0].context == {"list": [1]}
    assert final.steps[1].context == {"list": [1, 2]}
    assert final.previous_context == {"list": []}


@pytest.mark.asyncio
async def test_consumer_mutation_does_not_affect_later_events():
    wf = workflow(
        "consumer-mutation",
        merge_step("one", lambda ctx: {"one": 1}),
        merge_step("two", lambda ctx: {"two": 2}),
    )

    seen = []
    async for event in wf.run(initial_context={"base": True}):
        seen.append(event)
        event.new_context["tampered"] = True
        if event.steps:
            event.steps[0].context["tampered"] = True

    assert "tampered" not in seen[-1].steps[1].context
    assert seen[-1].new_context == {"base": True, "one": 1, "two": 2, "tampered": True}
    assert seen[1].previous_context == {"base": True}


@pytest.mark.asyncio
async def test_handler_mutation_does_not_affect_yielded_event(collect):
    def tamper(event):
        event.new_context["tampered"] = True

    wf = workflow(
        "handler-mutation",
        merge_step("one", lambda ctx: {"one": 1}),
        on(EventType.UPDATE, tamper),
    )

    events = await collect(wf.run(initial_context={}))

    assert events[1].new_context == {"one": 1}


@pytest.mark.asyncio
async def test_caller_mutation_after_run_is_not_observed(collect):
    initial = {"value": 1}
    wf = workflow("caller-mutation", merge_step("copy", lambda ctx: {"copy": ctx["value"]}))

    events = wf.run(initial_context=initial)
    initial["value"] = 2

    collected = await collect(events)

    assert collected[-1].new_context == {"value": 1, "copy": 1}
