"""
Command-line interface for the commit ledger.

Provides CLI commands for server management and for producing commits:
- init-db: Initialize the database schema
- run: Start the API server (with the retention sweeper)
- sweep: Run one retention sweep and exit
- keygen: Generate an Ed25519 key pair and print its address
- create-commit: Sign a commit, search its nonce and optionally submit it

Usage:
    commit-ledger init-db
    commit-ledger run [--port PORT] [--host HOST]
    commit-ledger sweep
    commit-ledger keygen
    commit-ledger create-commit --private-key HEX --type post --text "hello"
    commit-ledger create-commit --private-key HEX --type note --data '{"k": 1}' \\
        --submit http://localhost:4000

Environment Variables:
    LEDGER_HOST: Host to bind API server (default: 0.0.0.0)
    LEDGER_PORT: Port for API server (default: 4000)
    LEDGER_DIFFICULTY: Difficulty enforced by the server (default: 3)
    See commit_ledger.config for the full list.
"""

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime


def cmd_init_db(args: argparse.Namespace) -> int:
    """
    Initialize the database schema.

    Returns:
        0 on success, 1 on error
    """
    from commit_ledger.db.errors import DatabaseError
    from commit_ledger.db.schema import init_database

    try:
        init_database()
        print("Database initialized successfully.")
        return 0
    except DatabaseError as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run the API server in the foreground.

    Configuration priority:
        1. CLI arguments (--port, --host)
        2. Environment variables (LEDGER_PORT, LEDGER_HOST)
        3. config/server.ini, then built-in defaults

    Returns:
        0 on clean shutdown (Ctrl+C), 1 on error during startup
    """
    from commit_ledger.api.server import start_server
    from commit_ledger.config import config, print_config_summary
    from commit_ledger.logging_config import configure_logging

    configure_logging(config.logging)
    print_config_summary(config)

    try:
        start_server(host=getattr(args, "host", None), port=getattr(args, "port", None))
        return 0
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except OSError as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


def cmd_sweep(args: argparse.Namespace) -> int:
    """
    Run a single retention sweep with the configured window and column.

    Returns:
        0 on success, 1 on storage failure
    """
    from commit_ledger.config import config
    from commit_ledger.core.retention import RetentionSweeper
    from commit_ledger.db.errors import DatabaseError
    from commit_ledger.logging_config import configure_logging

    configure_logging(config.logging)
    sweeper = RetentionSweeper(
        config.retention.window,
        config.retention.interval,
        column=config.retention.column,
    )
    try:
        deleted = sweeper.sweep()
    except DatabaseError as e:
        print(f"Error running retention sweep: {e}", file=sys.stderr)
        return 1
    print(f"Removed {deleted} commit(s) older than {config.retention.window_days} days.")
    return 0


def cmd_keygen(args: argparse.Namespace) -> int:
    """Print a fresh private key, its public key and the derived address."""
    from commit_ledger.crypto import derive_address, generate_keypair, private_key_hex

    private_key, public_key = generate_keypair()
    print(f"Private key: {private_key_hex(private_key)}")
    print(f"Public key:  {public_key}")
    print(f"Address:     {derive_address(public_key)}")
    return 0


def _commit_data(args: argparse.Namespace):
    """Resolve the commit payload from --data or the post template options."""
    from commit_ledger.crypto import post_template

    if args.data is not None:
        return json.loads(args.data)
    return post_template(
        args.text or "",
        reply_to=args.reply_to,
        mentions=args.mention,
        tags=args.tag,
    )


async def _submit(url: str, candidate) -> dict:
    from commit_ledger.client import ClientConfig, LedgerAPIClient

    async with LedgerAPIClient(ClientConfig(server_url=url)) as client:
        return await client.submit_commit(candidate)


async def _server_difficulty(url: str) -> int:
    from commit_ledger.client import ClientConfig, LedgerAPIClient

    async with LedgerAPIClient(ClientConfig(server_url=url)) as client:
        info = await client.get_server_info()
    return int(info["difficulty"])


def cmd_create_commit(args: argparse.Namespace) -> int:
    """
    Build a signed commit and print it as JSON.

    The difficulty comes from --difficulty, else from the server named by
    --submit, else from local configuration. With --submit the commit is sent
    to the server and the stored record is printed instead.

    Returns:
        0 on success, 1 on bad input or a rejected submission
    """
    from commit_ledger.client import APIError
    from commit_ledger.client.api_client import candidate_payload
    from commit_ledger.config import config
    from commit_ledger.crypto import create_commit, load_private_key

    try:
        private_key = load_private_key(args.private_key)
        data = _commit_data(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    commit_at = datetime.now(UTC).isoformat() if args.commit_at else None

    try:
        difficulty = args.difficulty
        if difficulty is None:
            if args.submit:
                difficulty = asyncio.run(_server_difficulty(args.submit))
            else:
                difficulty = config.ledger.difficulty

        candidate = create_commit(private_key, data, args.type, difficulty, commit_at=commit_at)
        if not args.submit:
            print(json.dumps(candidate_payload(candidate), indent=2))
            return 0

        stored = asyncio.run(_submit(args.submit, candidate))
    except APIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(stored, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="commit-ledger",
        description="Commit Ledger - signed, proof-of-work gated append-only log",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init-db command
    init_parser = subparsers.add_parser(
        "init-db",
        help="Initialize the database schema",
        description="Create the commits table and its indexes if they do not exist.",
    )
    init_parser.set_defaults(func=cmd_init_db)

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run the ledger server",
        description="Start the API server; the retention sweeper runs alongside it.",
    )
    run_parser.add_argument(
        "--port",
        "-p",
        type=int,
        help="API server port (default: 4000, or LEDGER_PORT env var)",
    )
    run_parser.add_argument(
        "--host",
        type=str,
        help="Host to bind the server to (default: 0.0.0.0, or LEDGER_HOST env var)",
    )
    run_parser.set_defaults(func=cmd_run)

    # sweep command
    sweep_parser = subparsers.add_parser(
        "sweep",
        help="Run one retention sweep",
        description="Delete commits older than the configured retention window and exit.",
    )
    sweep_parser.set_defaults(func=cmd_sweep)

    # keygen command
    keygen_parser = subparsers.add_parser(
        "keygen",
        help="Generate a signing key pair",
        description="Print a new Ed25519 private key, public key and address (all hex).",
    )
    keygen_parser.set_defaults(func=cmd_keygen)

    # create-commit command
    commit_parser = subparsers.add_parser(
        "create-commit",
        help="Sign a commit and find its nonce",
        description=(
            "Build a commit signed with the given key. Use --data for an arbitrary JSON "
            "payload, or --text (with --reply-to, --mention, --tag) for a post."
        ),
    )
    commit_parser.add_argument("--private-key", required=True, help="Hex Ed25519 private key")
    commit_parser.add_argument("--type", default="post", help="Commit type (default: post)")
    commit_parser.add_argument("--data", help="JSON payload (overrides the post template)")
    commit_parser.add_argument("--text", help="Post text")
    commit_parser.add_argument("--reply-to", help="Signature of the parent post")
    commit_parser.add_argument(
        "--mention", action="append", default=[], help="Mentioned address (repeatable)"
    )
    commit_parser.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")
    commit_parser.add_argument("--difficulty", type=int, help="Difficulty to satisfy")
    commit_parser.add_argument(
        "--commit-at",
        action="store_true",
        help="Attach the current time as commitAt",
    )
    commit_parser.add_argument("--submit", metavar="URL", help="Submit to this server")
    commit_parser.set_defaults(func=cmd_create_commit)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
