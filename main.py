import asyncio
import logging
import os
import platform
import signal
import sys

from uid_monitor.orchestrator import UIDMonitor

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("main")


def _attach_stdin(loop: asyncio.AbstractEventLoop, monitor: UIDMonitor) -> None:
    """Feed stdin lines to the command dispatcher without blocking the loop."""

    async def _run(line: str) -> None:
        if monitor.commands is None:
            return
        reply = await monitor.commands.dispatch(line)
        if reply:
            print(reply, flush=True)

    def _on_readable() -> None:
        line = sys.stdin.readline()
        if not line:
            # EOF: stop listening, keep monitoring
            loop.remove_reader(sys.stdin.fileno())
            return
        loop.create_task(_run(line))

    loop.add_reader(sys.stdin.fileno(), _on_readable)


async def main() -> None:
    monitor = UIDMonitor()
    loop    = asyncio.get_running_loop()

    if platform.system() != "Windows":

        def _shutdown(sig: signal.Signals) -> None:
            log.info("Received %s — shutting down gracefully...", sig.name)
            monitor.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown, sig)

        if sys.stdin.isatty():
            _attach_stdin(loop, monitor)

        try:
            await monitor.run()
        except asyncio.CancelledError:
            log.info("Monitor stopped.")

    else:
        try:
            await monitor.run()
        except (asyncio.CancelledError, KeyboardInterrupt):
            log.info("Shutting down...")
            monitor.stop()
            log.info("Monitor stopped.")


if __name__ == "__main__":
    asyncio.run(main())
