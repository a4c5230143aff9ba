"""Blog publishing chain run entirely in-process."""

import asyncio

from formchain import (
    ChainCallbacks,
    ChainRunner,
    InitialResult,
    ProgressPublisher,
    chain_action,
    step_response,
)
from formchain.transports import InMemoryStepTransport

transport = InMemoryStepTransport()


@chain_action("markdown", message="Markdown processed")
async def markdown(previous):
    await asyncio.sleep(0.2)
    description = previous.get("description") or ""
    return {"wordCount": len(description.split())}


@chain_action("seo", message="SEO metadata generated")
async def seo(previous):
    await asyncio.sleep(0.2)
    return {
        "meta": {
            "title": previous.get("title"),
            "description": previous.get("abstract"),
            "keywords": ["svelte", "chain", "form"],
        }
    }


@chain_action("save", message="Project saved to database")
async def save(previous):
    await asyncio.sleep(0.2)
    return {"projectId": "a1b2c3"}


@chain_action("publish")
async def publish(previous):
    await asyncio.sleep(0.2)
    return {"url": f"/posts/{previous['projectId']}"}


for action in (markdown, seo, save, publish):
    transport.register(action.__name__, action)


async def main():
    publisher = ProgressPublisher()
    publisher.subscribe(
        lambda record: print(f"[{record.percent:>3}%] {record.step}")
    )
    runner = ChainRunner(transport, publisher=publisher)

    upload = InitialResult.success(
        step_response(
            "upload",
            message="File uploaded successfully",
            data={
                "title": "Chaining form actions",
                "description": "one request per step",
                "abstract": "Why and how",
                "featuredImageName": "cover.png",
            },
        )
    )

    handler = runner.run_chain(
        ["markdown", "seo", "save", "publish"],
        ChainCallbacks(
            on_success=lambda result: print(f"✅ {result.message}\n{result.final}"),
            on_error=lambda error: print(f"❌ {error}"),
        ),
    )
    await handler(upload)


if __name__ == "__main__":
    asyncio.run(main())
