import logging
import socket
import sys
import time

from quoteload.quotes import RESPONSE_SIZE, build_request, clean_response

logger = logging.getLogger(__name__)

REQUEST_DEADLINE = 10.0  # seconds, covers the write and the read together


class RequestError(Exception):
    def __init__(self, operation, address, cause):
        self.operation = operation
        self.address = address
        self.cause = cause
        super().__init__(operation, address, cause)

    def __str__(self):
        if isinstance(self.cause, socket.timeout):
            reason = f"deadline exceeded ({self.cause})"
        else:
            reason = str(self.cause)
        return f"{self.operation} {self.address}: {reason}"


def _remaining(deadline):
    left = deadline - time.monotonic()
    if left <= 0:
        raise socket.timeout("timed out")
    return left


def get_quote(endpoint, stats, out_lock=None, deadline=REQUEST_DEADLINE, out=None):
    """Send one quote request over a fresh connection and print the reply.

    Any socket failure is raised as RequestError; nothing is retried.
    """
    request = build_request()

    try:
        sock = socket.socket(endpoint.family, socket.SOCK_STREAM)
    except OSError as e:
        # EMFILE lands here once enough requests are in flight
        raise RequestError("Could not connect to", endpoint, e) from e

    with sock:
        try:
            sock.settimeout(deadline)
            sock.connect(endpoint.sockaddr)
        except OSError as e:
            raise RequestError("Could not connect to", endpoint, e) from e

        expires_at = time.monotonic() + deadline

        try:
            sock.settimeout(_remaining(expires_at))
            sock.sendall(request)
        except OSError as e:
            raise RequestError("Problem sending to", endpoint, e) from e
        stats.record_request()

        try:
            sock.settimeout(_remaining(expires_at))
            data = sock.recv(RESPONSE_SIZE)
        except OSError as e:
            raise RequestError("Problem reading from", endpoint, e) from e
        if not data:
            raise RequestError("Problem reading from", endpoint, EOFError("connection closed by peer"))

    quote = clean_response(data)
    if out is None:
        out = sys.stdout
    if out_lock is None:
        print(quote, file=out, flush=True)
    else:
        with out_lock:
            print(quote, file=out, flush=True)
    stats.record_quote()

    logger.debug(f"{request.decode().strip()} -> {quote!r}")
