import sys
import threading
from collections import namedtuple

Snapshot = namedtuple("Snapshot", ["quotes", "requests"])


class Stats:
    """Request/quote counters shared by every request thread.

    Both counters sit behind one lock so a snapshot never sees a quote
    without the request that produced it.
    """

    def __init__(self):
        self._requests = 0
        self._quotes = 0
        self._lock = threading.Lock()

    def record_request(self):
        with self._lock:
            self._requests += 1

    def record_quote(self):
        with self._lock:
            self._quotes += 1

    @property
    def requests_sent(self):
        with self._lock:
            return self._requests

    @property
    def quotes_received(self):
        with self._lock:
            return self._quotes

    def snapshot(self):
        with self._lock:
            return Snapshot(quotes=self._quotes, requests=self._requests)

    def report(self, length, stream=None):
        if stream is None:
            stream = sys.stderr
        totals = self.snapshot()
        print(f"Quotes: {totals.quotes}", file=stream)
        print(f"Requests: {totals.requests}", file=stream)
        print(f"Req per sec: {totals.requests / length:.2f}", file=stream)
        return totals
