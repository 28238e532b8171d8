# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface for managing address lookup tables.

Every command signs with a keypair file in the ``solana-keygen`` format, a
JSON array of 64 integers, and talks to a JSON-RPC endpoint (devnet unless
``--rpc-url`` says otherwise).

Supported Commands:
- create: create an empty table owned by the keypair
- extend: append ``--address`` entries to ``--table``
- show: print the authority, status and addresses of ``--table``
- deactivate: start the cooldown that precedes closing ``--table``
- close: close a deactivated ``--table`` and reclaim its rent
- transfer: send ``--lamports`` to every ``--address`` in one v0 transaction
  that references ``--table``

Examples:
    Create and fill a table::

        python -m solana_alt.cli create --keypair-path ~/.config/solana/id.json
        python -m solana_alt.cli extend --keypair-path ~/.config/solana/id.json \\
            --table <table> --address <a> <b> --address <c>

    Pay everyone in the table::

        python -m solana_alt.cli transfer --keypair-path ~/.config/solana/id.json \\
            --table <table> --address <a> <b> <c> --lamports 10000000

    Programmatic usage::

        from solana_alt.cli import main

        await main(["show", "--table", "<table>"])
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
import tempfile
import unittest
from typing import List, Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .async_client import RpcClient
from .keypair import load_keypair as read_keypair_file
from .lookup_table_client import AddressLookupTableClient
from .system_program import lamports_to_sol, transfer_to_each

DEVNET_RPC_URL = "https://api.devnet.solana.com"

COMMANDS = ["create", "extend", "show", "deactivate", "close", "transfer"]


def pubkey(value: str) -> Pubkey:
    """argparse type for base58 addresses."""
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid address {value!r}: {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solana address lookup table CLI")
    parser.add_argument(
        "command", type=str, help="The command to execute", choices=COMMANDS
    )
    parser.add_argument(
        "--rpc-url",
        help=f"JSON-RPC endpoint (default: {DEVNET_RPC_URL})",
        type=str,
        default=DEVNET_RPC_URL,
    )
    parser.add_argument(
        "--keypair-path",
        help="Path to a keypair file holding a JSON array of 64 integers",
        type=str,
    )
    parser.add_argument("--table", help="Address of the lookup table", type=pubkey)
    parser.add_argument(
        "--address",
        help="Addresses to add or pay (can be specified multiple times)",
        action="extend",
        nargs="+",
        type=pubkey,
        default=[],
    )
    parser.add_argument(
        "--recipient",
        help="Receives the rent of a closed table (default: the keypair)",
        type=pubkey,
    )
    parser.add_argument(
        "--lamports", help="Lamports sent to each address", type=int, default=0
    )
    return parser


def validate(parser: argparse.ArgumentParser, parsed_args: argparse.Namespace):
    """Check the options each command needs; exits through ``parser.error``."""
    command = parsed_args.command
    if command != "show" and parsed_args.keypair_path is None:
        parser.error("Missing required argument '--keypair-path'")
    if command != "create" and parsed_args.table is None:
        parser.error("Missing required argument '--table'")
    if command in ("extend", "transfer") and not parsed_args.address:
        parser.error("Missing required argument '--address'")
    if command == "transfer" and parsed_args.lamports <= 0:
        parser.error("'--lamports' must be positive")


def load_keypair(parser: argparse.ArgumentParser, path: str) -> Keypair:
    try:
        return read_keypair_file(path)
    except FileNotFoundError:
        parser.error(f"Keypair file not found: {path}")
    except ValueError as e:
        parser.error(f"Failed to load keypair: {e}")


async def main(args: List[str]):
    parser = build_parser()
    parsed_args = parser.parse_args(args)
    validate(parser, parsed_args)

    signer: Optional[Keypair] = None
    if parsed_args.keypair_path is not None:
        signer = load_keypair(parser, parsed_args.keypair_path)

    rpc_client = RpcClient(parsed_args.rpc_url)
    tables = AddressLookupTableClient(rpc_client)
    table: Pubkey = parsed_args.table

    try:
        if parsed_args.command == "create":
            table, signature = await tables.create_lookup_table(signer)
            print(f"Lookup table: {table}")
            print(f"Signature: {signature}")
        elif parsed_args.command == "extend":
            for signature in await tables.extend_lookup_table(
                table, signer, parsed_args.address
            ):
                print(f"Signature: {signature}")
        elif parsed_args.command == "show":
            account = await tables.get_lookup_table(table)
            state = account.state
            print(f"Lookup table: {table}")
            print(f"Authority: {state.authority or 'frozen'}")
            if account.is_active():
                print("Status: active")
            else:
                print(f"Status: deactivated at slot {state.deactivation_slot}")
            for index, address in enumerate(account.addresses):
                print(f"{index:>3}: {address}")
        elif parsed_args.command == "deactivate":
            signature = await tables.deactivate_lookup_table(table, signer)
            print(f"Signature: {signature}")
        elif parsed_args.command == "close":
            signature = await tables.close_lookup_table(
                table, signer, parsed_args.recipient
            )
            print(f"Signature: {signature}")
        elif parsed_args.command == "transfer":
            account = await tables.get_lookup_table(table)
            instructions = transfer_to_each(
                signer.pubkey(), parsed_args.address, parsed_args.lamports
            )
            signature = await rpc_client.send_and_confirm_versioned_transaction(
                signer, instructions, lookup_tables=[account.lookup_table_account()]
            )
            total = lamports_to_sol(parsed_args.lamports * len(instructions))
            print(f"Sent {total} SOL to {len(instructions)} addresses")
            print(f"Signature: {signature}")
    finally:
        await rpc_client.close()


class Test(unittest.TestCase):
    TABLE = str(Pubkey(b"\x0c" * 32))

    def _parse(self, args: List[str]) -> argparse.Namespace:
        parser = build_parser()
        parsed_args = parser.parse_args(args)
        validate(parser, parsed_args)
        return parsed_args

    def test_extend_arguments(self):
        address = str(Pubkey(b"\x0d" * 32))
        parsed_args = self._parse(
            [
                "extend",
                "--keypair-path",
                "id.json",
                "--table",
                self.TABLE,
                "--address",
                address,
                address,
            ]
        )
        self.assertEqual(parsed_args.table, Pubkey(b"\x0c" * 32))
        self.assertEqual(parsed_args.address, [Pubkey(b"\x0d" * 32)] * 2)
        self.assertEqual(parsed_args.rpc_url, DEVNET_RPC_URL)

    def test_repeated_address_option(self):
        first = Pubkey(b"\x0d" * 32)
        second = Pubkey(b"\x0e" * 32)
        third = Pubkey(b"\x0f" * 32)
        parsed_args = self._parse(
            [
                "transfer",
                "--keypair-path",
                "id.json",
                "--table",
                self.TABLE,
                "--address",
                str(first),
                "--address",
                str(second),
                str(third),
                "--lamports",
                "1000",
            ]
        )
        self.assertEqual(parsed_args.address, [first, second, third])

    def test_show_needs_no_keypair(self):
        parsed_args = self._parse(["show", "--table", self.TABLE])
        self.assertIsNone(parsed_args.keypair_path)
        self.assertEqual(parsed_args.address, [])

    def test_missing_arguments(self):
        with self.assertRaises(SystemExit):
            self._parse(["deactivate", "--table", self.TABLE])
        with self.assertRaises(SystemExit):
            self._parse(["close", "--keypair-path", "id.json"])
        with self.assertRaises(SystemExit):
            self._parse(
                ["transfer", "--keypair-path", "id.json", "--table", self.TABLE]
            )

    def test_invalid_address(self):
        with self.assertRaises(SystemExit):
            self._parse(["show", "--table", "not-base58-0OIl"])

    def test_malformed_keypair_file(self):
        (file, path) = tempfile.mkstemp()
        with os.fdopen(file, "w") as handle:
            handle.write(json.dumps(["a"] * 64))
        try:
            with self.assertRaises(SystemExit):
                load_keypair(build_parser(), path)
        finally:
            os.remove(path)
        with self.assertRaises(SystemExit):
            load_keypair(build_parser(), path)


def run():
    asyncio.run(main(sys.argv[1:]))


if __name__ == "__main__":
    run()
