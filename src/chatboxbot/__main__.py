"""``python -m chatboxbot``: run the bot until interrupted."""

import asyncio
import contextlib

import chatboxbot.entrypoint
from chatboxbot.core.error_handling import (
    install_global_exception_hooks,
    register_asyncio_exception_handler,
)


def _serve(runner: asyncio.Runner) -> None:
    try:
        runner.run(chatboxbot.entrypoint.main())
    except KeyboardInterrupt:
        # Stop polling and close the forum session on the same loop; a
        # second Ctrl+C during that cleanup is ignored.
        with contextlib.suppress(KeyboardInterrupt):
            runner.run(chatboxbot.entrypoint.shutdown())


def main() -> None:
    """Install the error hooks and run the bot on a fresh event loop."""
    install_global_exception_hooks()
    with asyncio.Runner() as runner:
        register_asyncio_exception_handler(runner.get_loop())
        _serve(runner)


if __name__ == "__main__":
    main()
