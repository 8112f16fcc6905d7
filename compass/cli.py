#!/usr/bin/env python3
"""
Compass CLI.

    COMMAND     ALIASES         WHAT IT DOES
    -------     -------         ----------------------------------
    serve       start, up       Start the Compass server
    ping        status, health  Ping a running instance
"""

import argparse

from compass import __version__


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_serve(args):
    """Start the Compass server."""
    import uvicorn
    from compass.config import get_config

    cfg = get_config()
    host = args.host or cfg["server"]["host"]
    port = args.port or cfg["server"]["port"]

    print(f"  Compass v{__version__} on {host}:{port}")
    print(f"  Backend: {cfg['backend']['url']}")
    print(f"  Model: {cfg['backend']['model']}")
    print()

    uvicorn.run(
        "compass.main:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level="info",
    )


def cmd_ping(args):
    """Ping a running Compass instance."""
    import httpx

    url = (args.url or "http://localhost:3000").rstrip("/")
    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        if resp.status_code != 200:
            print(f"  ✗  No answer — got HTTP {resp.status_code}")
            return 1

        info = resp.json()
        stats = httpx.get(f"{url}/stats", timeout=5).json()
        print(f"  ✓  {url} is UP (v{info.get('version', '?')}, model {info.get('model', '?')})")
        print(f"  Sessions: {stats.get('sessions', 0)}")
        print(
            f"  Messages: {stats.get('messages', 0)} "
            f"(user: {stats.get('user_messages', 0)}, "
            f"assistant: {stats.get('assistant_messages', 0)})"
        )
        return 0
    except httpx.ConnectError:
        print(f"  ✗  Nothing listening at {url}")
        return 1
    except Exception as e:
        print(f"  ✗  Error: {e}")
        return 1


def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under multiple names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compass",
        description="Compass — from where you are to where you want to be.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"compass {__version__}",
    )

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_serve(p):
        p.add_argument("--host", default=None, help="Override listen host")
        p.add_argument("--port", "-p", type=int, default=None, help="Override listen port")
        p.add_argument("--reload", action="store_true", help="Auto-reload on code changes (dev)")

    _add_command(sub, ["serve", "start", "up"],
                 "Start the Compass server", cmd_serve, setup_serve)

    def setup_ping(p):
        p.add_argument("--url", "-u", default=None, help="Compass URL (default: http://localhost:3000)")

    _add_command(sub, ["ping", "status", "health"],
                 "Ping a running Compass instance", cmd_ping, setup_ping)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    return args.func(args) or 0


if __name__ == "__main__":
    raise SystemExit(main())
