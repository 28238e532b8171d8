# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
solana-alt - Address lookup tables and versioned transactions on Solana.

A small async library for working with address lookup tables on top of
``solana-py`` and ``solders``: the lookup table program instructions and
account decoding, legacy and version 0 transaction compilation with the
1232-byte packet check, and an RPC client that submits transactions and
waits for confirmation.

Core Features:
- **Keys**: ``solders`` keypairs stored in the ``solana-keygen`` JSON format
- **Lookup tables**: create, extend, freeze, deactivate and close
  instructions, table address derivation and decoding of table accounts
- **Transactions**: legacy and v0 compilation, with account keys replaced
  by table indexes where a table holds them
- **RPC client**: ``solana.rpc.async_api.AsyncClient`` with confirmation
  and block/slot polling loops
- **CLI**: ``python -m solana_alt.cli`` for table management

Modules:
- ``keypair``: keypair files and recipient generation
- ``system_program``, ``address_lookup_table``: instructions and table state
- ``async_client``, ``lookup_table_client``: network access
- ``metadata``, ``cli``: client header and command line front end

Quick Start:
    Send 22 transfers in one v0 transaction::

        import asyncio
        from solders.keypair import Keypair
        from solana_alt.async_client import FaucetClient, RpcClient
        from solana_alt.keypair import make_keypairs
        from solana_alt.lookup_table_client import AddressLookupTableClient
        from solana_alt.system_program import LAMPORTS_PER_SOL, transfer_to_each

        async def main():
            rpc_client = RpcClient("https://api.devnet.solana.com")
            payer = Keypair()
            await FaucetClient(rpc_client).fund_account(payer.pubkey(), LAMPORTS_PER_SOL)

            recipients = [keypair.pubkey() for keypair in make_keypairs(22)]
            tables = AddressLookupTableClient(rpc_client)
            table, _ = await tables.create_lookup_table(payer)
            await tables.extend_lookup_table(table, payer, recipients)
            await rpc_client.wait_for_new_block()

            account = await tables.get_lookup_table(table)
            signature = await rpc_client.send_and_confirm_versioned_transaction(
                payer,
                transfer_to_each(payer.pubkey(), recipients, LAMPORTS_PER_SOL // 100),
                lookup_tables=[account.lookup_table_account()],
            )
            print(signature)
            await rpc_client.close()

        asyncio.run(main())

Testing:
    The modules carry their unit tests at the bottom of each file::

        python -m pytest
        python -m unittest solana_alt.address_lookup_table

    Behavior specifications live under ``features/``::

        behave

Requirements:
    - Python 3.9 or higher
    - solana for the JSON-RPC client
    - solders for keys, instructions, messages and transactions
    - python-dotenv for the examples' ``.env`` file
"""
