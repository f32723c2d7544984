import socket
import threading

import pytest


class StubQuoteServer:
    """Tiny quote server on 127.0.0.1 for tests.

    mode "echo" answers every request line with the line itself (no newline),
    mode "silent" accepts connections and never answers.
    """

    def __init__(self, mode="echo", reply_suffix=b"\n"):
        self.mode = mode
        self.reply_suffix = reply_suffix
        self.received = []
        self.lock = threading.Lock()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(128)
        self.host, self.port = self.sock.getsockname()
        self.held = []
        self.closed = threading.Event()

    def handle_client(self, conn):
        if self.mode == "silent":
            with self.lock:
                self.held.append(conn)
            return
        with conn:
            try:
                data = conn.recv(1024)
                if not data:
                    return
                line = data.rstrip(b"\n")
                with self.lock:
                    self.received.append(line.decode())
                conn.sendall(line + self.reply_suffix)
            except OSError:
                pass

    def serve(self):
        while not self.closed.is_set():
            try:
                conn, _ = self.sock.accept()
            except OSError:
                break
            threading.Thread(target=self.handle_client, args=(conn,), daemon=True).start()

    def start(self):
        threading.Thread(target=self.serve, daemon=True).start()
        return self

    def close(self):
        self.closed.set()
        self.sock.close()
        with self.lock:
            for conn in self.held:
                conn.close()


@pytest.fixture
def quote_server():
    server = StubQuoteServer().start()
    yield server
    server.close()


@pytest.fixture
def padded_server():
    server = StubQuoteServer(reply_suffix=b"\n\x00\x00\x00").start()
    yield server
    server.close()


@pytest.fixture
def silent_server():
    server = StubQuoteServer(mode="silent").start()
    yield server
    server.close()


@pytest.fixture
def closed_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return port
