# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Lookup Table Transfer Example - batched transfers in a version 0 transaction.

Workflow:
    1. Create a lookup table, deriving its address from a slot one behind the
       slot the node reports
    2. Extend it with 22 fresh recipient addresses
    3. Wait for a new block, since addresses are only usable from the block
       after they were added
    4. Send 0.01 SOL to every recipient in one v0 transaction that names the
       recipients by their table index

Examples:
    Run the example::

        python -m examples.lookup_table_transfer
"""

import asyncio
import unittest

from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from solana_alt.address_lookup_table import AddressLookupTableState
from solana_alt.async_client import ClientConfig, FakeNode, RpcClient
from solana_alt.keypair import make_keypairs
from solana_alt.lookup_table_client import (
    AddressLookupTableClient,
    sent_instruction_data,
    table_account,
)
from solana_alt.system_program import sol_to_lamports, transfer_to_each

from .common import (
    COMMITMENT,
    RPC_URL,
    explorer_url,
    initialize_keypair,
    run_scripted,
)

RECIPIENT_COUNT = 22
AMOUNT_SOL = 0.01
RECENT_SLOT_OFFSET = 1


async def main():
    rpc_client = RpcClient(RPC_URL, ClientConfig(commitment=COMMITMENT))
    try:
        payer = await initialize_keypair(rpc_client)
        tables = AddressLookupTableClient(rpc_client)
        recipients = [keypair.pubkey() for keypair in make_keypairs(RECIPIENT_COUNT)]

        table, signature = await tables.create_lookup_table(
            payer, slot_offset=RECENT_SLOT_OFFSET
        )
        print(f"Lookup table: {table}")
        print(f"Created: {explorer_url(signature)}")

        for signature in await tables.extend_lookup_table(table, payer, recipients):
            print(f"Extended: {explorer_url(signature)}")

        await rpc_client.wait_for_new_block(1)
        account = await tables.get_lookup_table(table)
        print(f"Table holds {len(account.addresses)} addresses")

        instructions = transfer_to_each(
            payer.pubkey(), recipients, sol_to_lamports(AMOUNT_SOL)
        )
        signature = await rpc_client.send_and_confirm_versioned_transaction(
            payer, instructions, lookup_tables=[account.lookup_table_account()]
        )
        print(f"Transfers: {explorer_url(signature)}")
    finally:
        await rpc_client.close()



class Test(unittest.IsolatedAsyncioTestCase):
    async def test_transfers_through_lookup_table(self):
        payer = Keypair.from_seed(b"\x01" * 32)
        recipients = [Keypair.from_seed(bytes([seed]) * 32) for seed in range(2, 24)]
        filled = AddressLookupTableState(
            authority=payer.pubkey(),
            addresses=[recipient.pubkey() for recipient in recipients],
        )
        node = FakeNode(
            get_slot=[1000],
            get_latest_blockhash=[FakeNode.blockhash()],
            send_raw_transaction=[Signature.default()],
            confirm_transaction=[FakeNode.confirmed()],
            get_account_info=[
                table_account(AddressLookupTableState(authority=payer.pubkey())),
                table_account(filled),
            ],
            get_block_height=[10, 11],
        )
        output = await run_scripted(__name__, main, node, payer, recipients)

        send = ["get_latest_blockhash", "send_raw_transaction", "confirm_transaction"]
        self.assertEqual(
            node.methods(),
            ["get_slot"]
            + send
            + ["get_account_info"]
            + send
            + ["get_block_height", "get_block_height", "get_account_info"]
            + send,
        )

        create, extend, _ = sent_instruction_data(node)
        self.assertEqual(create[4:12], (999).to_bytes(8, "little"))
        self.assertEqual(int.from_bytes(extend[4:12], "little"), RECIPIENT_COUNT)

        message = VersionedTransaction.from_bytes(node.sent_transactions()[-1]).message
        (lookup,) = message.address_table_lookups
        self.assertEqual(len(lookup.writable_indexes), RECIPIENT_COUNT)
        self.assertEqual(len(message.instructions), RECIPIENT_COUNT)
        self.assertIn(f"Table holds {RECIPIENT_COUNT} addresses", output)


if __name__ == "__main__":
    asyncio.run(main())
