"""
Signal handling for the orchestration module.

Turns SIGINT/SIGTERM into a shutdown request on the orchestrator state and
restores the previous handlers on cleanup. A repeated signal during shutdown
cancels the in-flight rebuild cycle, if any.
"""

import asyncio
import logging
import signal
from typing import Any, Dict, List, Optional

from .shared_state import OrchestratorState

logger = logging.getLogger(__name__)

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalHandler:
    """
    Manages signal registration and cleanup for one development loop.

    Handlers are installed on the running event loop where supported, and
    through `signal.signal` plus `call_soon_threadsafe` otherwise.
    """

    def __init__(self, state: OrchestratorState):
        self.state = state
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_signals: List[int] = []
        self._original_handlers: Dict[int, Any] = {}

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers on the running loop."""
        self._loop = asyncio.get_running_loop()
        for sig in _HANDLED_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self._handle_signal, sig)
                self._loop_signals.append(sig)
                continue
            except (NotImplementedError, RuntimeError):
                # Event loops without add_signal_handler support (Windows)
                pass
            try:
                self._original_handlers[sig] = signal.signal(sig, self._threadsafe_handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Failed to set up handler for signal {sig}: {e}")
        logger.debug("Signal handlers set up for development loop")

    def cleanup_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        if self._loop is not None:
            for sig in self._loop_signals:
                self._loop.remove_signal_handler(sig)
        for sig, handler in self._original_handlers.items():
            try:
                signal.signal(sig, handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Failed to restore handler for signal {sig}: {e}")
        self._loop_signals.clear()
        self._original_handlers.clear()
        self._loop = None
        logger.debug("Signal handlers restored")

    def _threadsafe_handler(self, signum: int, frame: Any) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._handle_signal, signum)

    def _handle_signal(self, signum: int) -> None:
        if self.state.shutdown_requested.is_set():
            cycle = self.state.current_cycle
            if cycle is not None and not cycle.done():
                logger.warning("Shutdown already in progress. Cancelling the in-flight rebuild...")
                cycle.cancel()
                return
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        name = signal.Signals(signum).name
        logger.info(f"Signal {name} received. Initiating graceful shutdown...")
        self.state.shutdown_requested.set()
