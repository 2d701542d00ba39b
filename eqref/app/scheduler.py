from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from eqref.app.config import DEFAULT_SYNC_DEBOUNCE_MS

logger = logging.getLogger(__name__)


class ChangeScheduler(QObject):
    """Leading + trailing debounce on the Qt event loop.

    The first trigger of a burst runs the callback right away. Triggers that
    arrive while the quiescence window is open restart the window and leave a
    single pending call, which runs once the window elapses. The window is
    open whenever the callback runs, so the callback never nests.
    """

    fired = Signal(bool)  # True for the leading edge, False for trailing

    def __init__(
        self,
        callback: Callable[[], None],
        interval_ms: int = DEFAULT_SYNC_DEBOUNCE_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._callback = callback
        self._pending = False
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_window_elapsed)

    def interval(self) -> int:
        return self._timer.interval()

    def set_interval(self, interval_ms: int) -> None:
        self._timer.setInterval(interval_ms)

    def is_pending(self) -> bool:
        return self._pending

    def is_window_open(self) -> bool:
        return self._timer.isActive()

    def trigger(self) -> None:
        if self._timer.isActive():
            self._pending = True
            self._timer.start()
            return
        # Open the window before running so re-entrant triggers coming from
        # the callback's own document writes are batched as trailing.
        self._timer.start()
        self._run(leading=True)

    def flush(self) -> None:
        """Run a pending trailing call now instead of waiting."""
        if not self._pending:
            return
        self._pending = False
        self._timer.start()
        self._run(leading=False)

    def cancel(self) -> None:
        self._timer.stop()
        self._pending = False

    def _on_window_elapsed(self) -> None:
        if not self._pending:
            return
        self._pending = False
        # Reopen so writes made by the callback queue another trailing call
        self._timer.start()
        self._run(leading=False)

    def _run(self, *, leading: bool) -> None:
        logger.debug("Scheduler firing (%s)", "leading" if leading else "trailing")
        self._callback()
        self.fired.emit(leading)
