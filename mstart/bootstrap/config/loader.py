import argparse
import os
from functools import lru_cache
from pathlib import Path

CONFIG_ENV = "MSTARTCONFIG"
DEFAULT_CONFIG_NAME = "mstart.yaml"

EPILOG = """\
configuration file lookup, first match wins:
  1. --config <file.yaml>
  2. the MSTARTCONFIG environment variable
  3. ./mstart.yaml

any setting of the file can be overridden from the environment with the
MSTART_ prefix and "__" between sections, e.g.:
  MSTART_SERVER__HOST=10.0.0.7
  MSTART_SESSION__ACTIVITY=Kiosk
  MSTART_LINK__RECONNECT_DELAY=5
"""


@lru_cache
def get_cli_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mstart",
        description=(
            "Link this process to an M-START server.\n\n"
            "Opens one TCP connection to the server, announces the configured\n"
            "activity with a '/set-link-with-activity' message, then logs every\n"
            "OSC message the server pushes. A dropped link is reopened every\n"
            "`link.reconnect_delay` seconds (20 by default) until it succeeds\n"
            "or `link.max_retries` is exhausted. Stop with Ctrl-C or SIGTERM."
        ),
        epilog=EPILOG,
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        metavar="FILE",
        help="YAML file with the server, session and link sections (see below)"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "DEBUG    → adds every message outside /client-send/ and task lifecycle.\n"
            "INFO     → link established, handshakes, server pushes (default).\n"
            "WARNING  → dropped frames and messages, failed connect attempts.\n"
            "ERROR    → lost links, abandoned reconnects, observer failures.\n"
            "CRITICAL → only critical failures."
        ),
    )

    return parser.parse_args()


@lru_cache
def get_configfile() -> Path:
    args = get_cli_args()

    if args.config:
        file, origin = Path(args.config), "--config"
    elif raw := os.getenv(CONFIG_ENV):
        file, origin = Path(raw), CONFIG_ENV
    else:
        file, origin = Path.cwd() / DEFAULT_CONFIG_NAME, "working directory"

    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}' (from {origin}).\n"
            f"  - Use --config <file.yaml>\n"
            f"  - Or set the {CONFIG_ENV} environment variable\n"
            f"  - Or place a '{DEFAULT_CONFIG_NAME}' file in the working directory.\n"
            "Run 'mstart --help' for the expected sections."
        )

    return file
