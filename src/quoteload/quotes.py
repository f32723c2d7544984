"""Quote server wire format and endpoint lookup.

Requests are a single line, ``<SYM>,<user>\\n``, where SYM is a random
three letter ticker. Responses are opaque text, possibly NUL padded and
newline terminated.
"""
import random
import socket
import string
from dataclasses import dataclass

LETTERS = string.ascii_uppercase
SYMBOL_LENGTH = 3
USER_TAG = "jdoe"
RESPONSE_SIZE = 1024

PADDING = b"\x00\n"


class ResolveError(Exception):
    pass


@dataclass(frozen=True)
class Endpoint:
    family: int
    sockaddr: tuple
    address: str

    def __str__(self):
        return self.address


def random_symbol(rng=random):
    # independent draws, so "AAA" is as likely as "ABC"
    return "".join(rng.choice(LETTERS) for _ in range(SYMBOL_LENGTH))


def build_request(symbol=None):
    if symbol is None:
        symbol = random_symbol()
    return f"{symbol},{USER_TAG}\n".encode()


def clean_response(raw):
    return raw.strip(PADDING).decode("utf-8", errors="replace")


def resolve_endpoint(host, port):
    address = f"{host}:{port}"
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, proto=socket.IPPROTO_TCP)
    except (OSError, UnicodeError) as e:
        raise ResolveError(f"Could not resolve TCP addr for {address}: {e}") from e
    if not infos:
        raise ResolveError(f"Could not resolve TCP addr for {address}: no addresses found")

    family, _, _, _, sockaddr = infos[0]
    return Endpoint(family=family, sockaddr=sockaddr, address=address)
