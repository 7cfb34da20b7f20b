"""
Command-line interface for the login server.

Provides CLI commands for server management:
- init-db: Initialize the database schema
- create-account: Register an account outside the self-registration path
- run: Start the world-node listener

Usage:
    login-server init-db
    login-server create-account [--staff-level N]
    login-server run [--host HOST] [--port PORT]

Environment Variables:
    LOGIN_ACCOUNT_USER: Username for create-account (skips the prompt)
    LOGIN_ACCOUNT_PASSWORD: Password for create-account (skips the prompt)
    LOGIN_HOST / LOGIN_PORT: Listener binding (see login_server.config)
"""

import argparse
import getpass
import os
import sys


def get_account_credentials_from_env() -> tuple[str, str] | None:
    """
    Get account credentials from environment variables.

    Returns:
        Tuple of (username, password) if both LOGIN_ACCOUNT_USER and
        LOGIN_ACCOUNT_PASSWORD are set, otherwise None.
    """
    username = os.environ.get("LOGIN_ACCOUNT_USER")
    password = os.environ.get("LOGIN_ACCOUNT_PASSWORD")

    if username and password:
        return username, password
    return None


def prompt_for_credentials() -> tuple[str, str]:
    """
    Interactively prompt for account credentials.

    Returns:
        Tuple of (username, password).
    """
    print("\n" + "=" * 60)
    print("CREATE ACCOUNT")
    print("=" * 60)

    while True:
        username = input("Username: ").strip()
        if not username:
            print("Username must not be empty.")
            continue
        break

    while True:
        password = getpass.getpass("Password: ")
        if not password:
            print("Password must not be empty.")
            continue
        password_confirm = getpass.getpass("Confirm password: ")
        if password != password_confirm:
            print("Passwords do not match. Try again.\n")
            continue
        break

    return username, password


def cmd_init_db(args: argparse.Namespace) -> int:
    """
    Initialize the database schema.

    Returns:
        0 on success, 1 on error
    """
    from login_server.db.schema import init_database

    try:
        init_database()
        print("Database initialized successfully.")
        return 0
    except Exception as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1


def cmd_create_account(args: argparse.Namespace) -> int:
    """
    Create an account with an optional staff level.

    Checks LOGIN_ACCOUNT_USER and LOGIN_ACCOUNT_PASSWORD first. If not set,
    prompts interactively.

    Returns:
        0 on success, 1 on error
    """
    from login_server.db import accounts_repo
    from login_server.db.schema import init_database

    init_database()

    env_creds = get_account_credentials_from_env()
    if env_creds:
        username, password = env_creds
        print(f"Using credentials from environment variables for user '{username}'")
    else:
        if not sys.stdin.isatty():
            print(
                "Error: No credentials provided.\n"
                "Set LOGIN_ACCOUNT_USER and LOGIN_ACCOUNT_PASSWORD environment variables,\n"
                "or run interactively to be prompted for credentials.",
                file=sys.stderr,
            )
            return 1
        username, password = prompt_for_credentials()

    staff_level = getattr(args, "staff_level", 0) or 0

    try:
        if accounts_repo.create_account(username, password, staff_level=staff_level):
            print(f"\nAccount '{username}' created (staff level {staff_level}).")
            return 0
        print(f"Error: User '{username}' already exists.", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error creating account: {e}", file=sys.stderr)
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run the world-node listener.

    Initializes the database if it does not exist yet, configures logging
    from config, and serves until interrupted.

    Returns:
        0 on clean shutdown (Ctrl+C), 1 on startup error
    """
    from login_server.api.server import start_server
    from login_server.config import config, print_config_summary
    from login_server.db.connection import get_db_path
    from login_server.db.schema import init_database
    from login_server.logging_config import configure_logging

    configure_logging(config.logging)

    if not get_db_path().exists():
        print("Database not found. Initializing...")
        init_database()

    print_config_summary()

    host = getattr(args, "host", None)
    port = getattr(args, "port", None)

    try:
        start_server(host=host, port=port)
        return 0
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="login-server",
        description="Login coordinator for multi-node game worlds",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser(
        "init-db",
        help="Initialize the database schema",
        description="Create the account and session tables if they do not exist.",
    )
    init_parser.set_defaults(func=cmd_init_db)

    account_parser = subparsers.add_parser(
        "create-account",
        help="Create a player or staff account",
        description=(
            "Create an account. Uses LOGIN_ACCOUNT_USER and LOGIN_ACCOUNT_PASSWORD "
            "environment variables if set, otherwise prompts interactively."
        ),
    )
    account_parser.add_argument(
        "--staff-level",
        type=int,
        default=0,
        help="Moderation level forwarded to world nodes (default: 0)",
    )
    account_parser.set_defaults(func=cmd_create_account)

    run_parser = subparsers.add_parser(
        "run",
        help="Run the login server",
        description="Accept world-node websocket connections.",
    )
    run_parser.add_argument(
        "--port",
        "-p",
        type=int,
        help="Listener port (default: 43500, or LOGIN_PORT env var)",
    )
    run_parser.add_argument(
        "--host",
        type=str,
        help="Host to bind to (default: 0.0.0.0, or LOGIN_HOST env var)",
    )
    run_parser.set_defaults(func=cmd_run)

    return parser


def main() -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
