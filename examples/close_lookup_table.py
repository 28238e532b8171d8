# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Close Lookup Table Example - reclaiming a table's rent.

A table cannot be closed as soon as it is deactivated: transactions may still
reference it until its deactivation slot leaves the slot hashes window, about
513 slots or three to four minutes on devnet. This example creates a table,
deactivates it, waits out the cooldown and closes it, returning the rent to
the payer.

Examples:
    Run the example::

        python -m examples.close_lookup_table
"""

import asyncio
import unittest

from solders.keypair import Keypair
from solders.signature import Signature

from solana_alt.address_lookup_table import AddressLookupTableState
from solana_alt.async_client import ClientConfig, FakeNode, RpcClient
from solana_alt.lookup_table_client import (
    AddressLookupTableClient,
    sent_instruction_data,
    table_account,
)
from solana_alt.system_program import lamports_to_sol

from .common import (
    COMMITMENT,
    RPC_URL,
    explorer_url,
    initialize_keypair,
    run_scripted,
)


async def main():
    rpc_client = RpcClient(RPC_URL, ClientConfig(commitment=COMMITMENT))
    try:
        payer = await initialize_keypair(rpc_client)
        tables = AddressLookupTableClient(rpc_client)

        table, signature = await tables.create_lookup_table(payer)
        print(f"Lookup table: {table}")
        print(f"Created: {explorer_url(signature)}")

        signature = await tables.deactivate_lookup_table(table, payer)
        print(f"Deactivated: {explorer_url(signature)}")

        print("Waiting for the deactivation cooldown...")
        slot = await tables.wait_until_closable(table)
        print(f"Closable at slot {slot}")

        before = await rpc_client.get_balance(payer.pubkey())
        signature = await tables.close_lookup_table(table, payer)
        print(f"Closed: {explorer_url(signature)}")
        after = await rpc_client.get_balance(payer.pubkey())
        print(f"Reclaimed {lamports_to_sol(after - before)} SOL")
    finally:
        await rpc_client.close()



class Test(unittest.IsolatedAsyncioTestCase):
    async def test_closes_after_cooldown(self):
        payer = Keypair.from_seed(b"\x01" * 32)
        deactivated = AddressLookupTableState(
            deactivation_slot=1000, authority=payer.pubkey()
        )
        node = FakeNode(
            get_slot=[1000, 1514],
            get_latest_blockhash=[FakeNode.blockhash()],
            send_raw_transaction=[Signature.default()],
            confirm_transaction=[FakeNode.confirmed()],
            get_account_info=[table_account(deactivated)],
            get_balance=[5_000, 1_005_000],
        )
        output = await run_scripted(__name__, main, node, payer)

        send = ["get_latest_blockhash", "send_raw_transaction", "confirm_transaction"]
        self.assertEqual(
            node.methods(),
            ["get_slot"]
            + send
            + send
            + ["get_account_info", "get_slot", "get_balance"]
            + send
            + ["get_balance"],
        )

        _, deactivate, close = sent_instruction_data(node)
        self.assertEqual(deactivate, bytes([3, 0, 0, 0]))
        self.assertEqual(close, bytes([4, 0, 0, 0]))
        self.assertIn("Closable at slot 1514", output)
        self.assertIn("Reclaimed 0.001 SOL", output)


if __name__ == "__main__":
    asyncio.run(main())
