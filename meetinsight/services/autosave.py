import threading


class PendingWrite:
    """Token for one scheduled write; a newer token for the same key supersedes it."""

    def __init__(self, key, payload):
        self.key = key
        self.payload = payload
        self.timer = None
        self.cancelled = False

    def cancel(self):
        self.cancelled = True
        if self.timer is not None:
            self.timer.cancel()


class AutosaveScheduler:
    """Debounced, fire-and-forget writes keyed by field.

    ``schedule(key, payload)`` cancels any pending write for ``key`` and
    arms a new one that calls ``writer(payload)`` after ``delay`` seconds,
    so a burst of edits to one field produces a single write.

    ``flush_writer`` (default: ``writer``) runs the writes forced by
    ``flush``; it must have finished writing when it returns.
    """

    def __init__(self, writer, delay=0.8, app=None, flush_writer=None):
        self._writer = writer
        self._flush_writer = flush_writer or writer
        self._delay = delay
        self._app = app
        self._pending = {}
        self._lock = threading.Lock()

    def schedule(self, key, payload) -> PendingWrite:
        token = PendingWrite(key, payload)
        with self._lock:
            prev = self._pending.get(key)
            if prev is not None:
                prev.cancel()
            timer = threading.Timer(self._delay, self._fire, args=(token,))
            timer.daemon = True
            token.timer = timer
            self._pending[key] = token
            timer.start()
        return token

    def _fire(self, token):
        with self._lock:
            if token.cancelled or self._pending.get(token.key) is not token:
                return
            del self._pending[token.key]
        if self._app is not None:
            with self._app.app_context():
                self._writer(token.payload)
        else:
            self._writer(token.payload)

    def flush(self):
        """Run every pending write now, in the calling thread."""
        with self._lock:
            tokens = list(self._pending.values())
            self._pending.clear()
        for token in tokens:
            token.cancel()
        for token in tokens:
            self._flush_writer(token.payload)
        return len(tokens)

    def cancel_all(self):
        with self._lock:
            tokens = list(self._pending.values())
            self._pending.clear()
        for token in tokens:
            token.cancel()

    def pending_keys(self):
        with self._lock:
            return sorted(self._pending)
