import logging
import time

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Named latest-wins debounce. Scheduling a name again replaces the pending
    call and restarts its timer. Due calls run from poll(), on the caller's
    thread, so the engine stays single-threaded.
    """

    def __init__(self, clock=None):
        self._clock = clock or time.monotonic
        self._pending = {}  # name -> (deadline, fn)

    def schedule(self, name, fn, delay_ms):
        deadline = self._clock() + delay_ms / 1000.0
        if name in self._pending:
            logger.debug(f"Debounce '{name}' superseded")
        self._pending[name] = (deadline, fn)

    def cancel(self, name):
        return self._pending.pop(name, None) is not None

    def pending(self):
        return sorted(self._pending)

    def poll(self, now=None):
        """Run every operation whose quiet period has elapsed. Returns the names run."""
        now = self._clock() if now is None else now
        due = sorted(
            ((deadline, name) for name, (deadline, _) in self._pending.items() if deadline <= now)
        )
        ran = []
        for _, name in due:
            _, fn = self._pending.pop(name)
            self._run(name, fn)
            ran.append(name)
        return ran

    def flush(self):
        """Run everything pending immediately, earliest deadline first."""
        return self.poll(now=float("inf"))

    def _run(self, name, fn):
        try:
            fn()
        except Exception as e:
            # Recomposition is best-effort; a failed tick must not break the next one.
            logger.error(f"Debounced operation '{name}' failed: {e}")


class FrameScheduler:
    """Animation-frame coalescer: many requests, at most one callback per frame."""

    def __init__(self):
        self._callback = None
        self.frames_rendered = 0

    @property
    def has_pending(self):
        return self._callback is not None

    def request(self, callback):
        if self._callback is None:
            self._callback = callback
            return True
        return False

    def tick(self):
        callback, self._callback = self._callback, None
        if callback is None:
            return False
        callback()
        self.frames_rendered += 1
        return True
