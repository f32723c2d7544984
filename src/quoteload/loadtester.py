"""Fixed-rate quote server load tester.

One control thread paces the run: every ``delay`` ms it starts a new request
thread without waiting on the ones already out, and after ``length`` seconds
it stops and reports the counters. The first request that fails ends the
whole run.
"""
import logging
import os
import sys
import threading
import time

from quoteload.client import RequestError, get_quote
from quoteload.config import parse_args
from quoteload.quotes import ResolveError, resolve_endpoint
from quoteload.stats import Stats

logger = logging.getLogger(__name__)

RUNNING = "RUNNING"
TERMINATED = "TERMINATED"

# finished request threads are dropped once the list grows past this
PRUNE_THRESHOLD = 64


class Pacer:
    """Tick schedule at start+D, start+2D, ... on the monotonic clock.

    Ticks are computed from the start time rather than from the previous
    firing, so a late tick does not shift the ones after it, and a loop that
    falls behind still sees every tick it missed.
    """

    def __init__(self, delay, start=None):
        if delay <= 0:
            raise ValueError(f"delay must be positive, got {delay}")
        self.delay = delay
        self.start = time.monotonic() if start is None else start
        self.ticks = 0

    @property
    def next_tick(self):
        return self.start + (self.ticks + 1) * self.delay

    def due(self, now):
        return now >= self.next_tick

    def advance(self):
        self.ticks += 1
        return self.ticks


class LoadTester:
    def __init__(self, config, endpoint, stats=None, task=get_quote):
        self.config = config
        self.endpoint = endpoint
        self.stats = stats if stats is not None else Stats()
        self.task = task
        self.state = RUNNING
        self.pacer = None

        self._threads = []
        self._prune_at = PRUNE_THRESHOLD
        self._muted = False
        self._out_lock = threading.Lock()
        self._failure = None
        self._failure_lock = threading.Lock()
        self._failed = threading.Event()
        self._started = False

    def _request(self):
        try:
            self.task(self.endpoint, self.stats, self._out_lock)
        except RequestError as e:
            self._fail(e)
        except Exception as e:
            logger.debug("Unexpected request failure", exc_info=True)
            self._fail(RequestError("Request failed for", self.endpoint, e))

    def _fail(self, error):
        with self._failure_lock:
            if self._failure is not None:
                return
            self._failure = error
        self._failed.set()

    def _check_failure(self):
        if self._failed.is_set():
            self.state = TERMINATED
            self.mute()
            raise self._failure

    def _spawn(self):
        t = threading.Thread(target=self._request, daemon=True)
        t.start()
        self._threads.append(t)
        if len(self._threads) >= self._prune_at:
            self._threads = [th for th in self._threads if th.is_alive()]
            self._prune_at = max(PRUNE_THRESHOLD, 2 * len(self._threads))

    def mute(self):
        """Stop request threads from printing any more quotes.

        The output lock is taken and never released, so threads still in
        flight block before writing instead of racing interpreter shutdown.
        """
        if self._muted:
            return
        self._out_lock.acquire()
        self._muted = True

    def in_flight(self):
        return sum(1 for t in self._threads if t.is_alive())

    def run(self):
        if self._started:
            raise RuntimeError("load test already ran")
        self._started = True

        self.pacer = Pacer(self.config.delay_seconds)
        expiry = self.pacer.start + self.config.length_seconds
        logger.info(f"Requesting quotes from {self.endpoint} every {self.config.delay}ms for {self.config.length}s")

        while True:
            self._check_failure()
            now = time.monotonic()
            if now >= expiry:
                break
            if self.pacer.due(now):
                self.pacer.advance()
                self._spawn()
                continue
            self._failed.wait(min(self.pacer.next_tick, expiry) - now)

        logger.info(f"Run expired after {self.pacer.ticks} ticks, {self.in_flight()} requests still in flight")

        if self.config.drain:
            for t in self._threads:
                t.join()
            self._check_failure()

        self.state = TERMINATED
        return self.stats.snapshot()


def main(argv=None):
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING").upper())

    config = parse_args(argv)

    try:
        endpoint = resolve_endpoint(config.host, config.port)
    except ResolveError as e:
        logger.error(e)
        return 1

    tester = LoadTester(config, endpoint)
    try:
        tester.run()
    except RequestError as e:
        logger.error(e)
        return 1

    tester.mute()
    tester.stats.report(config.length_seconds, stream=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
