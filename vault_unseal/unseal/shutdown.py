import asyncio
import signal
from typing import Optional

from loguru import logger

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownController:
    """
    Broadcast-once cancellation signal shared by all unseal workers. Once triggered it stays triggered, every current
    and future waiter is released.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed = []
        self.reason = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def trigger(self, reason: str = "shutdown requested"):
        """
        Signal cancellation to all workers, calls after the first one have no effect

        :param reason: description of what caused the shutdown, logged once
        """
        if self._event.is_set():
            return
        self.reason = reason
        logger.warning(f"{reason}, shutting down...")
        self._event.set()

    def handle_signal(self, sig: signal.Signals):
        self.trigger(f"{signal.Signals(sig).name} received")

    async def wait_for_cancellation(self, timeout: Optional[float] = None) -> bool:
        """
        Suspend until the shutdown is triggered. Returns immediately if it already was.

        :param timeout: maximum time to wait in seconds, wait indefinitely if None
        :return: True if cancellation was signaled, False if the timeout elapsed first
        """
        if timeout is None:
            await self._event.wait()
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return self._event.is_set()
        return True

    def install_signal_handlers(self):
        """
        Trigger the shutdown on SIGINT and SIGTERM. Must be called from within the running event loop.
        """
        self._loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.handle_signal, sig)
            except NotImplementedError:
                # event loops without signal support (windows)
                signal.signal(sig, lambda signum, frame: self._loop.call_soon_threadsafe(self.handle_signal, signum))
            self._installed.append(sig)
        logger.debug("Installed shutdown signal handlers")

    def remove_signal_handlers(self):
        if self._loop is None:
            return
        for sig in self._installed:
            try:
                self._loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)
        self._installed = []
