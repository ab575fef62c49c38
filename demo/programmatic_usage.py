#!/usr/bin/env python3
"""Example: programmatic usage via seqrun.

Switches a fake "stream" between sources faster than it can open and close,
and shows that only the latest source is ever opened and that each stream is
closed before the next opens.

Example:
    uv run python demo/programmatic_usage.py alpha beta gamma
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from seqrun import RunnerEvent, RunnerOptions, SequentialEffect, SequentialTaskRunner


def open_stream(source: str):
    async def setup():
        await asyncio.sleep(0.05)
        print(f"opened {source}")

        async def close() -> None:
            await asyncio.sleep(0.05)
            print(f"closed {source}")

        return close

    return setup


async def main(sources: list[str]) -> None:
    def on_event(event: RunnerEvent) -> None:
        logging.getLogger("demo").info("%s %s", event.runner, event.type)

    runner = SequentialTaskRunner(RunnerOptions(name="player"), on_event=on_event)
    slot = SequentialEffect(runner)
    async with slot:
        for source in sources:
            slot.update(open_stream(source), deps=[source])
            await asyncio.sleep(0.02)
        await slot.runner.wait_idle()


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(sys.argv[1:] or ["alpha", "beta", "gamma"]))
