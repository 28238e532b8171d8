# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Common configuration and utilities for the lookup table examples.

Every example loads the same ``.env`` file, connects to the same RPC endpoint
and signs with the same payer, which ``initialize_keypair`` creates on first
use and funds from the devnet faucet whenever it runs low.

Environment Variables:
    SOLANA_ENV_PATH: Path of the ``.env`` file holding ``PRIVATE_KEY``
    SOLANA_RPC_URL: JSON-RPC endpoint (default: devnet)
    SOLANA_COMMITMENT: Commitment for queries and confirmation (default: confirmed)
    SOLANA_CLUSTER: Cluster name used in explorer links (default: devnet)
    PRIVATE_KEY: The payer's 64-byte secret key as a JSON array

Usage Examples:
    Connecting with the shared configuration::

        from examples.common import COMMITMENT, RPC_URL, initialize_keypair
        from solana_alt.async_client import ClientConfig, RpcClient

        rpc_client = RpcClient(RPC_URL, ClientConfig(commitment=COMMITMENT))
        payer = await initialize_keypair(rpc_client)

    Switching to a local validator::

        export SOLANA_RPC_URL=http://127.0.0.1:8899
        export SOLANA_CLUSTER=custom
        python -m examples.lookup_table_transfer

Note:
    The generated ``.env`` holds a private key. Keep it out of version control.
"""

import contextlib
import io
import os
import os.path
import tempfile
import unittest
from typing import Any, Awaitable, Callable, List, Optional
from unittest import mock

from dotenv import dotenv_values, load_dotenv, set_key
from solana.rpc.commitment import Commitment
from solders.keypair import Keypair

from solana_alt.async_client import FakeNode, FaucetClient, RpcClient
from solana_alt.keypair import keypair_from_json, keypair_to_json
from solana_alt.system_program import LAMPORTS_PER_SOL, lamports_to_sol

# Path of the .env file that stores the payer between runs
ENV_PATH = os.getenv("SOLANA_ENV_PATH", os.path.abspath("./.env"))

load_dotenv(ENV_PATH)

# JSON-RPC endpoint; devnet is the only public cluster with an airdrop
RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.devnet.solana.com")

COMMITMENT = Commitment(os.getenv("SOLANA_COMMITMENT", "confirmed"))

CLUSTER = os.getenv("SOLANA_CLUSTER", "devnet")


def explorer_url(signature: object) -> str:
    return f"https://explorer.solana.com/tx/{signature}?cluster={CLUSTER}"


async def initialize_keypair(rpc_client: RpcClient, env_path: str = ENV_PATH) -> Keypair:
    """Load the payer from ``PRIVATE_KEY``, generating and saving one when it is
    missing, and top its balance up to 1 SOL."""
    private_key = os.getenv("PRIVATE_KEY")
    if private_key is None:
        print("Generating new keypair...")
        keypair = Keypair()
        set_key(env_path, "PRIVATE_KEY", keypair_to_json(keypair), quote_mode="never")
        os.environ["PRIVATE_KEY"] = keypair_to_json(keypair)
        print(f"Saved PRIVATE_KEY to {env_path}")
    else:
        try:
            keypair = keypair_from_json(private_key)
        except ValueError as e:
            raise ValueError("Failed to parse PRIVATE_KEY from .env file") from e

    print(f"Payer: {keypair.pubkey()}")
    await airdrop_sol_if_needed(rpc_client, keypair)
    return keypair


async def airdrop_sol_if_needed(rpc_client: RpcClient, keypair: Keypair) -> int:
    faucet_client = FaucetClient(rpc_client)
    balance = await faucet_client.airdrop_if_needed(
        keypair.pubkey(), LAMPORTS_PER_SOL, LAMPORTS_PER_SOL
    )
    print(f"Balance: {lamports_to_sol(balance)} SOL")
    return balance


async def run_scripted(
    module: str,
    main: Callable[[], Awaitable[Any]],
    node: FakeNode,
    payer: Keypair,
    recipients: Optional[List[Keypair]] = None,
) -> str:
    """Run an example against scripted node answers and return what it printed."""
    output = io.StringIO()
    with contextlib.ExitStack() as stack:
        stack.enter_context(node.patch())
        stack.enter_context(
            mock.patch(
                "solana_alt.async_client.Metadata.get_client_header_val",
                return_value="py/solana-alt/test",
            )
        )
        stack.enter_context(
            mock.patch(f"{module}.initialize_keypair", return_value=payer)
        )
        if recipients is not None:
            stack.enter_context(
                mock.patch(f"{module}.make_keypairs", return_value=recipients)
            )
        stack.enter_context(contextlib.redirect_stdout(output))
        await main()
    return output.getvalue()


class Test(unittest.IsolatedAsyncioTestCase):
    async def test_generates_and_saves_keypair(self):
        with tempfile.TemporaryDirectory() as directory, mock.patch.dict(
            os.environ, {}, clear=False
        ), mock.patch(
            "solana_alt.async_client.FaucetClient.airdrop_if_needed",
            return_value=LAMPORTS_PER_SOL,
        ) as airdrop:
            os.environ.pop("PRIVATE_KEY", None)
            env_path = os.path.join(directory, ".env")

            keypair = await initialize_keypair(mock.Mock(), env_path)

            saved = dotenv_values(env_path)["PRIVATE_KEY"]
            self.assertTrue(saved.startswith("["))
            self.assertEqual(keypair_from_json(saved).pubkey(), keypair.pubkey())
            airdrop.assert_awaited_once_with(
                keypair.pubkey(), LAMPORTS_PER_SOL, LAMPORTS_PER_SOL
            )

            # A second run reuses the stored key.
            reused = await initialize_keypair(mock.Mock(), env_path)
            self.assertEqual(reused.pubkey(), keypair.pubkey())

    async def test_invalid_private_key(self):
        for private_key in ("not-a-key", '["a"]', "[1, 2, 3]", '{"key": 1}'):
            with mock.patch.dict(os.environ, {"PRIVATE_KEY": private_key}):
                with self.assertRaises(ValueError) as context:
                    await initialize_keypair(mock.Mock())
            self.assertEqual(
                str(context.exception), "Failed to parse PRIVATE_KEY from .env file"
            )
