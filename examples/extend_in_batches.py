# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Extend In Batches Example - filling a table past one transaction's worth.

A single extend transaction carries at most about 30 addresses before it
outgrows the packet limit. This example adds 50 recipients in chunks of 30,
then pays all of them in one v0 transaction.

Examples:
    Run the example::

        python -m examples.extend_in_batches
"""

import asyncio
import unittest

from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from solana_alt.address_lookup_table import (
    MAX_ADDRESSES_PER_EXTEND,
    AddressLookupTableState,
)
from solana_alt.async_client import PACKET_DATA_SIZE, ClientConfig, FakeNode, RpcClient
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

RECIPIENT_COUNT = 50
AMOUNT_SOL = 0.001


async def main():
    rpc_client = RpcClient(RPC_URL, ClientConfig(commitment=COMMITMENT))
    try:
        payer = await initialize_keypair(rpc_client)
        tables = AddressLookupTableClient(rpc_client)
        recipients = [keypair.pubkey() for keypair in make_keypairs(RECIPIENT_COUNT)]

        table, signature = await tables.create_lookup_table(payer)
        print(f"Lookup table: {table}")
        print(f"Created: {explorer_url(signature)}")

        signatures = await tables.extend_lookup_table(
            table, payer, recipients, chunk_size=MAX_ADDRESSES_PER_EXTEND
        )
        for batch, signature in enumerate(signatures, start=1):
            print(f"Batch {batch}/{len(signatures)}: {explorer_url(signature)}")

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
    async def test_extends_in_batches(self):
        payer = Keypair.from_seed(b"\x01" * 32)
        recipients = [Keypair.from_seed(bytes([seed]) * 32) for seed in range(2, 52)]
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

        sent = node.sent_transactions()
        self.assertEqual(len(sent), 4)
        counts = [
            int.from_bytes(data[4:12], "little")
            for data in sent_instruction_data(node)[1:3]
        ]
        self.assertEqual(counts, [30, 20])
        self.assertIn("Batch 2/2", output)

        message = VersionedTransaction.from_bytes(sent[-1]).message
        (lookup,) = message.address_table_lookups
        self.assertEqual(len(lookup.writable_indexes), RECIPIENT_COUNT)
        self.assertLessEqual(len(sent[-1]), PACKET_DATA_SIZE)


if __name__ == "__main__":
    asyncio.run(main())
