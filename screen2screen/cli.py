"""screen2screen unified command-line interface"""

import argparse
import sys
from typing import NoReturn, Optional

from screen2screen import __version__


def arguments_parse(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments

    Args:
        argv: Argument list, defaults to sys.argv

    Returns:
        Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        prog="screen2screen",
        description="Control a remote screen: host answers, viewer dials and pans",
    )

    parser.add_argument("--version", action="version", version=f"screen2screen {__version__}")

    # Mode selection: --connect or --peer means viewer mode
    # Neither means run as host
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--connect",
        type=str,
        metavar="HOST[:PORT]",
        default=None,
        help="Dial the host at HOST[:PORT] (viewer mode). If omitted, run as host.",
    )
    mode.add_argument(
        "--peer",
        type=str,
        metavar="ID",
        default=None,
        help="Dial a host from viewer.peers by id or name (viewer mode)",
    )

    # Common options
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: search standard locations)",
    )

    # Host-specific options
    parser.add_argument(
        "--bind", type=str, default=None, help="[Host] Address to bind to (overrides config)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="[Host] Signaling port (overrides config)"
    )
    parser.add_argument(
        "--display", type=str, default=None, help="[Host] X11 display name (overrides config)"
    )

    # Viewer-specific options
    parser.add_argument(
        "--view-size",
        type=str,
        default="1280x800",
        dest="view_size",
        help="[Viewer] Rendered view size as WIDTHxHEIGHT (default: 1280x800)",
    )
    parser.add_argument(
        "--zoom", type=float, default=1.0, help="[Viewer] Initial magnification (default: 1.0)"
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging (overrides config)"
    )
    parser.add_argument(
        "--info", action="store_true", help="Enable info logging (overrides config)"
    )
    parser.add_argument(
        "--warning", action="store_true", help="Enable warning logging (overrides config)"
    )
    parser.add_argument(
        "--error", action="store_true", help="Enable error logging (overrides config)"
    )
    parser.add_argument(
        "--critical", action="store_true", help="Enable critical logging (overrides config)"
    )

    return parser.parse_args(argv)


def main() -> NoReturn:
    """Main entry point for unified screen2screen command"""
    args = arguments_parse()
    args.log_level = logLevelOverride_get(args)

    try:
        if viewerMode_isEnabled(args):
            from screen2screen.viewer.main import viewer_run

            viewer_run(args)
        else:
            from screen2screen.host.main import host_run

            host_run(args)
        sys.exit(0)

    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Create a config.yml file or specify path with --config", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def logLevelOverride_get(args: argparse.Namespace) -> Optional[str]:
    """
    Resolve explicit log level override flags.

    Args:
        args: Parsed CLI args.

    Returns:
        Selected log level or None.
    """
    if args.critical:
        return "CRITICAL"
    if args.error:
        return "ERROR"
    if args.warning:
        return "WARNING"
    if args.info:
        return "INFO"
    if args.debug:
        return "DEBUG"
    return None


def viewerMode_isEnabled(args: argparse.Namespace) -> bool:
    """
    Determine whether CLI should run viewer mode.

    Args:
        args: Parsed CLI args.

    Returns:
        True when viewer mode should run.
    """
    return bool(args.connect or args.peer)


if __name__ == "__main__":
    main()
