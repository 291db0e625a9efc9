"""
Poll a (simulated) job until it stops reporting `waiting`, padding each
status check to at least 200ms and starting the first one after 100ms.
"""
import asyncio
import logging
import random

from pacing_core import delay, pad, retry


logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(message)s")


async def fetch_status(state: dict) -> dict:
    await asyncio.sleep(random.uniform(0.01, 0.05))
    state["checks"] += 1
    return {"waiting": state["checks"] < 4, "checks": state["checks"]}


def keep_polling(value, error, attempts):
    if error is not None:
        # transient failures: try again in a second, give up after 10 tries
        return 1000 if attempts < 10 else False
    return 250 if value["waiting"] else False


async def main() -> None:
    state = {"checks": 0}
    status = await retry(
        lambda: delay(lambda: pad(lambda: fetch_status(state), 200), 100),
        keep_polling,
    )
    print(f"job finished after {status['checks']} checks")


if __name__ == "__main__":
    asyncio.run(main())
