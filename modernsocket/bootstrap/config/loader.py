import argparse
import os
from functools import lru_cache
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modernsocket",
        description=(
            "Open an interactive WebSocket session.\n\n"
            "Every message received is printed on stdout, every line read\n"
            "from stdin is sent as a text message. End of input closes the\n"
            "connection normally."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "url",
        type=str,
        help="WebSocket endpoint, e.g. ws://127.0.0.1:8765/chat"
    )

    parser.add_argument(
        "-p", "--protocol",
        action="append",
        default=[],
        help=(
            "Sub-protocol to offer during the opening handshake.\n"
            "Repeat the option to offer several sub-protocols."
        ),
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to a modernsocket configuration file"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → connection lifecycle tracing.\n"
            "WARNING  → abnormal closures and failures only (default).\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )

    return parser


@lru_cache
def get_cli_args() -> argparse.Namespace:
    return build_parser().parse_args()


def resolve_configfile(raw: str | None) -> Path | None:
    """
    Locate the configuration file.

    Priority: explicit path > MODERNSOCKETCONFIG > 'modernsocket.yaml' in the
    current working directory. Only an explicitly requested file is
    mandatory; without one, settings fall back to their defaults.
    """
    raw = raw or os.getenv("MODERNSOCKETCONFIG")

    if raw is None:
        file = Path.cwd() / "modernsocket.yaml"
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the MODERNSOCKETCONFIG environment variable\n"
            "  - Or place a 'modernsocket.yaml' file in the current working directory."
        )

    return file


@lru_cache
def get_configfile() -> Path | None:
    return resolve_configfile(get_cli_args().config)
