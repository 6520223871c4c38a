"""Run the deletion processor as a standalone worker until SIGINT/SIGTERM."""

import asyncio
import signal

from .app import books_application


async def main() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    
    async with books_application():
        await stop.wait()


if __name__ == "__main__":
    asyncio.run(main())
