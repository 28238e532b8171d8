# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Legacy Transfer Example - why lookup tables exist.

Sends 0.01 SOL to each of 22 fresh addresses in a single legacy transaction.
Every address travels in full, 32 bytes each, and the signed transaction
comes out at 1244 bytes, over the 1232-byte packet limit, so the send fails
before it reaches the network. ``lookup_table_transfer`` sends the same batch
as a version 0 transaction that fits.

Any failure, local or from the network, is printed rather than raised.

Examples:
    Run the example::

        python -m examples.legacy_transfer

    Expected output::

        Payer: 7xKX...
        Balance: 1.0 SOL
        Transaction failed: Transaction too large: 1244 > 1232
"""

import asyncio
import unittest
from unittest import mock

from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solders.keypair import Keypair
from solders.signature import Signature

from solana_alt.async_client import (
    ClientConfig,
    ClientError,
    ConfirmationTimeout,
    FakeNode,
    RpcClient,
    TransactionFailed,
)
from solana_alt.keypair import make_keypairs
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


async def main():
    rpc_client = RpcClient(RPC_URL, ClientConfig(commitment=COMMITMENT))
    try:
        payer = await initialize_keypair(rpc_client)

        recipients = [keypair.pubkey() for keypair in make_keypairs(RECIPIENT_COUNT)]
        instructions = transfer_to_each(
            payer.pubkey(), recipients, sol_to_lamports(AMOUNT_SOL)
        )

        try:
            signature = await rpc_client.send_and_confirm_transaction(
                payer, instructions
            )
            print(f"Transaction succeeded: {explorer_url(signature)}")
        except (ClientError, RPCException, SolanaRpcException) as e:
            print(f"Transaction failed: {e}")
    finally:
        await rpc_client.close()



class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.payer = Keypair.from_seed(b"\x01" * 32)

    async def test_reports_oversized_transaction(self):
        node = FakeNode(get_latest_blockhash=[FakeNode.blockhash()])
        output = await run_scripted(__name__, main, node, self.payer)

        self.assertIn("Transaction failed: Transaction too large: 1244 > 1232", output)
        self.assertEqual(node.methods(), ["get_latest_blockhash"])

    async def test_reports_network_failures(self):
        errors = [
            ConfirmationTimeout(Signature.default(), 60),
            TransactionFailed(Signature.default(), {"InstructionError": [0, "Custom"]}),
            RPCException("Transaction simulation failed"),
        ]
        for error in errors:
            with mock.patch(
                "solana_alt.async_client.RpcClient.send_and_confirm_transaction",
                side_effect=error,
            ):
                node = FakeNode(get_latest_blockhash=[FakeNode.blockhash()])
                output = await run_scripted(__name__, main, node, self.payer)
            self.assertIn(f"Transaction failed: {error}", output)


if __name__ == "__main__":
    asyncio.run(main())
