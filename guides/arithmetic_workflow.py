"""Simple example showing a three-step workflow and its event stream.

Run it directly, or through the CLI:

    echo '{"value": 2}' > context.json
    trellis run guides/arithmetic_workflow.py --context context.json
"""

import asyncio

from trellis import merge_step, on, reduce, step, workflow


def _store_value(result, context):
    return {**context, "value": result}


workflow = workflow(
    {"name": "arithmetic", "description": "Double, add ten, multiply by three"},
    step("double", lambda ctx: ctx["value"] * 2, reduce(_store_value)),
    merge_step("add ten", lambda ctx: {"value": ctx["value"] + 10}),
    step("multiply by three", lambda ctx: ctx["value"] * 3, reduce(_store_value)),
    on("workflow:complete", lambda event: print(f"🏁 Final context: {event.new_context}")),
)


async def main():
    async for event in workflow.run(initial_context={"value": 2}):
        print(f"📋 {event.type.value}: {event.new_context}")


if __name__ == "__main__":
    asyncio.run(main())
