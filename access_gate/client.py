#!/usr/bin/env python3
"""
Command-line client that requests access and waits for an admin to approve it.

Usage:
    access-gate                 # send a new request and wait
    access-gate --code 40231    # wait on a code you already have
    access-gate --list          # show saved codes
    access-gate --api-url http://localhost:5050   # go through the HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from access_gate import database
from access_gate.errors import SubmitError
from access_gate.reconciler import ReconcilerState
from access_gate.remote import HttpRequestStore, MongoRequestStore, RemoteRequestStore
from access_gate.services.local_code_store import LocalCodeStore
from access_gate.session import AccessSession
from access_gate.storage import JsonFileKeyValueStore, default_state_file
from access_gate.utils.scheduler import AsyncioScheduler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="access-gate",
        description="Request access and wait until an administrator approves it.",
    )
    parser.add_argument("--code", help="reuse an existing access code instead of requesting a new one")
    parser.add_argument("--list", action="store_true", help="print saved codes and exit")
    parser.add_argument(
        "--api-url",
        default=os.getenv("ACCESS_GATE_API_URL"),
        help="access gate API to talk to (default: $ACCESS_GATE_API_URL); without it MongoDB is used directly",
    )
    parser.add_argument("--state-file", help="where saved codes are kept (default: $ACCESS_GATE_STATE_FILE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def build_store(args: argparse.Namespace) -> Optional[RemoteRequestStore]:
    """Pick the request store the API server also uses, or None if there is none."""
    if args.api_url:
        return HttpRequestStore(args.api_url)
    if database.mongodb_enabled():
        return MongoRequestStore(database.get_database())
    return None


def _state_store(args: argparse.Namespace) -> JsonFileKeyValueStore:
    return JsonFileKeyValueStore(args.state_file or default_state_file())


def list_saved_codes(args: argparse.Namespace) -> int:
    local_codes = LocalCodeStore(_state_store(args))
    codes = local_codes.load()

    if local_codes.load_approval_flag():
        print("Access has been approved.")
    if not codes:
        print("No saved codes.")
        return 0

    print("Saved codes:")
    for code in codes:
        print(f"  {code}")
    return 0


async def request_access(args: argparse.Namespace, store: Optional[RemoteRequestStore] = None) -> int:
    """Run the request/poll flow until access is granted."""
    granted = asyncio.Event()
    if store is None:
        store = build_store(args)
    if store is None:
        print(
            "No shared request store configured. Pass --api-url (or set ACCESS_GATE_API_URL) "
            "or set ENABLE_MONGODB=true.",
            file=sys.stderr,
        )
        return 2

    session = AccessSession(store, _state_store(args), AsyncioScheduler(), granted.set)
    try:
        if session.start() is ReconcilerState.APPROVED:
            print("Access already granted.")
            return 0

        try:
            code = await session.submit(args.code)
        except SubmitError as exc:
            print(exc.message, file=sys.stderr)
            return 1

        print(f"Your code: {code}")
        if session.reconciler_state is not ReconcilerState.APPROVED:
            print("Status: pending...")
        await granted.wait()
        print("Access granted.")
        return 0
    finally:
        session.close()


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list:
        return list_saved_codes(args)

    try:
        return asyncio.run(request_access(args))
    except KeyboardInterrupt:
        print("Cancelled.")
        return 130
    finally:
        database.close_mongo_connection()


if __name__ == "__main__":
    sys.exit(main())
