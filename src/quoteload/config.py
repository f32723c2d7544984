import argparse
import os
from dataclasses import dataclass

DEFAULT_HOST = "quoteserve.seng.uvic.ca"
DEFAULT_PORT = 4440
DEFAULT_DELAY = 100  # ms
DEFAULT_LENGTH = 60  # seconds


@dataclass(frozen=True)
class Config:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    delay: int = DEFAULT_DELAY
    length: int = DEFAULT_LENGTH
    drain: bool = False

    @property
    def delay_seconds(self):
        return self.delay / 1000

    @property
    def length_seconds(self):
        return float(self.length)

    @property
    def address(self):
        return f"{self.host}:{self.port}"


def port_number(value):
    port = int(value)
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def positive_int(value):
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def build_parser():
    # -h belongs to --host, so help is long-form only
    parser = argparse.ArgumentParser(
        prog="quote-loadtester",
        description="Requests quotes at a fixed rate",
        add_help=False,
    )
    parser.add_argument("--help", action="help", help="Show this message and exit")
    parser.add_argument("-h", "--host", default=os.getenv("QUOTE_HOST", DEFAULT_HOST),
                        help="Quote server host address")
    parser.add_argument("-p", "--port", type=port_number, default=os.getenv("QUOTE_PORT", str(DEFAULT_PORT)),
                        help="Port to make requests from quoteserver")
    parser.add_argument("-d", "--delay", type=positive_int, default=os.getenv("QUOTE_DELAY", str(DEFAULT_DELAY)),
                        help="Delay between quote requests, in ms")
    parser.add_argument("-l", "--length", type=positive_int, default=os.getenv("QUOTE_LENGTH", str(DEFAULT_LENGTH)),
                        help="How long to request quotes, in sec")
    parser.add_argument("--drain", action="store_true",
                        help="Wait for in-flight requests to finish before printing stats")
    return parser


def parse_args(argv=None):
    """Parse command line flags into a Config.

    String defaults (including the ones read from the environment) go through
    the same type conversion as flags, so a bad QUOTE_PORT is a usage error too.
    """
    args = build_parser().parse_args(argv)
    return Config(
        host=args.host,
        port=args.port,
        delay=args.delay,
        length=args.length,
        drain=args.drain,
    )
