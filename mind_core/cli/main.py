"""
CLI_MAIN
========

Command-line interface for mindCore.

Global Flags:
    --server            Start the API server (with the expiry sweep)
    --port PORT         Port for API server (default: from config, 8080)
    --config PATH       JSON config file (default: ./config.json)

Commands:
    sessions USER_ID    List a user's sessions, newest first
    show SESSION_ID     Print a session as JSON
    cleanup             Delete sessions idle for more than the TTL
    health              Check the session store

Usage:
    python -m mind_core.cli --server
    python -m mind_core.cli --server --port 9000
    python -m mind_core.cli sessions user-42
    python -m mind_core.cli show 0b6f...
    python -m mind_core.cli cleanup
"""

import argparse
import json
import sys
from typing import List, Optional

from ..config import AppConfig, build_session_store, get_config_manager
from ..errors import MindCoreError
from ..logging_config import setup_logging
from ..services import SessionManager


def get_manager(config: AppConfig) -> SessionManager:
    """Session manager over the configured store."""
    return SessionManager(build_session_store(config), session_ttl_hours=config.storage.session_ttl_hours)


# ============================================================================
# CLI COMMANDS
# ============================================================================

def cli_sessions(manager: SessionManager, user_id: str) -> List[dict]:
    """Summaries of a user's sessions, newest first."""
    summaries = []
    for session in manager.list_sessions(user_id):
        metadata = session.get_metadata()
        summaries.append({
            "session_id": session.id,
            "concept": session.root_thought.content if session.root_thought else "",
            "active": session.is_active,
            "thoughts": metadata.total_thoughts,
            "created_at": session.created_at.isoformat() if session.created_at else "",
        })
    return summaries


def cli_show(manager: SessionManager, session_id: str) -> dict:
    return manager.get_session(session_id).to_dict()


def cli_cleanup(manager: SessionManager) -> dict:
    deleted = manager.cleanup_expired_sessions()
    return {"deleted": deleted}


def cli_health(manager: SessionManager) -> dict:
    try:
        manager.health_check()
    except MindCoreError as e:
        return {"status": "unavailable", "error": e.message}
    return {"status": "healthy"}


def cli_start_server(port: Optional[int] = None):
    """Start the API server."""
    from ..api.app import main as run_server

    print("\nmindCore API Server")
    print("=" * 50)
    print("Press Ctrl+C to stop\n")
    try:
        run_server(port=port)
    except KeyboardInterrupt:
        print("\nShutting down...")


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mind-core",
        description="mindCore - thought-exploration session service",
    )
    parser.add_argument("--server", action="store_true", help="Start the API server")
    parser.add_argument("--port", type=int, default=None, help="Port for API server")
    parser.add_argument("--config", default=None, help="Path to JSON config file")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    sessions_parser = subparsers.add_parser("sessions", help="List a user's sessions")
    sessions_parser.add_argument("user_id", help="Owner id")
    sessions_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    show_parser = subparsers.add_parser("show", help="Print a session as JSON")
    show_parser.add_argument("session_id", help="Session id")

    subparsers.add_parser("cleanup", help="Delete expired sessions")
    subparsers.add_parser("health", help="Check the session store")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config_manager = get_config_manager(args.config)
    config = config_manager.config
    setup_logging(level=config.server.log_level, log_file=config.server.log_file)

    if args.server:
        cli_start_server(port=args.port)
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    manager = get_manager(config)
    try:
        if args.command == "sessions":
            sessions = cli_sessions(manager, args.user_id)
            if args.json:
                print(json.dumps(sessions, indent=2))
            elif sessions:
                print(f"\nSessions for {args.user_id}:")
                for sess in sessions:
                    state = "active" if sess["active"] else "closed"
                    print(f"  {sess['session_id']}: {sess['concept']} "
                          f"[{state}, {sess['thoughts']} thoughts] ({sess['created_at'][:10]})")
            else:
                print("No sessions found.")

        elif args.command == "show":
            print(json.dumps(cli_show(manager, args.session_id), indent=2, ensure_ascii=False))

        elif args.command == "cleanup":
            result = cli_cleanup(manager)
            print(f"Deleted {result['deleted']} expired session(s).")

        elif args.command == "health":
            result = cli_health(manager)
            if result["status"] != "healthy":
                print(f"Session store unavailable: {result['error']}")
                return 1
            print("Session store healthy.")

    except MindCoreError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        manager.store.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
