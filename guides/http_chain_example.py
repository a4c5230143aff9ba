"""Run a chain against a page's form actions over HTTP.

Start a server exposing ``?/markdown``, ``?/seo``, ``?/save`` and
``?/publish`` actions first, then point FORMCHAIN_BASE_URL at the page.
"""

import asyncio

from formchain import ChainRunner, InitialResult, get_publisher, step_response
from formchain.config import load_config
from formchain.transports import get_transport


async def main():
    config = load_config()
    transport = get_transport("http", config=config)
    runner = ChainRunner(transport, config=config)

    async def report_progress():
        async for record in get_publisher().watch(stop_on_terminal=True):
            print(f"{record.percent:>3}% {record.step}")

    watcher = asyncio.create_task(report_progress())
    async with transport:
        outcome = await runner.execute(
            ["markdown", "seo", "save", "publish"],
            InitialResult.success(step_response("upload", data={"title": "Hello"})),
        )
    await watcher

    if outcome.ok:
        print(outcome.value.model_dump_json(indent=2))
    else:
        print(f"Chain failed [{outcome.error.kind}]: {outcome.error.message}")


if __name__ == "__main__":
    asyncio.run(main())
