# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
High level client for the lookup table lifecycle.

Each operation builds the program instruction, sends it as a version 0
transaction through ``RpcClient.send_and_confirm_versioned_transaction`` and
waits for confirmation. The authority signs every instruction; the payer,
which defaults to the authority, pays fees and rent.

Examples:
    Create a table, fill it and use it::

        tables = AddressLookupTableClient(rpc_client)
        table, _ = await tables.create_lookup_table(payer)
        await tables.extend_lookup_table(table, payer, recipients)
        await rpc_client.wait_for_new_block()

        account = await tables.get_lookup_table(table)
        await rpc_client.send_and_confirm_versioned_transaction(
            payer, instructions, lookup_tables=[account.lookup_table_account()]
        )

    Reclaim the rent once the table is no longer needed::

        await tables.deactivate_lookup_table(table, payer)
        await tables.wait_until_closable(table)
        await tables.close_lookup_table(table, payer)
"""

import logging
import unittest
from typing import List, Optional, Tuple
from unittest import mock

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from . import address_lookup_table
from .address_lookup_table import (
    DEACTIVATION_COOLDOWN_SLOTS,
    LOOKUP_TABLE_MAX_ADDRESSES,
    MAX_ADDRESSES_PER_EXTEND,
    AddressLookupTableState,
    LookupTable,
)
from .async_client import FakeNode, RpcClient, make_test_client


class AddressLookupTableClient:
    """Creates, extends, deactivates and closes lookup tables."""

    rpc_client: RpcClient

    def __init__(self, rpc_client: RpcClient):
        self.rpc_client = rpc_client

    async def _send(
        self, authority: Keypair, payer: Optional[Keypair], instruction: Instruction
    ) -> Signature:
        return await self.rpc_client.send_and_confirm_versioned_transaction(
            payer or authority, [instruction], [authority]
        )

    async def create_lookup_table(
        self,
        authority: Keypair,
        payer: Optional[Keypair] = None,
        slot_offset: int = 1,
    ) -> Tuple[Pubkey, Signature]:
        """
        Create a new, empty lookup table owned by ``authority``.

        The table address is derived from the authority and a recent slot,
        taken ``slot_offset`` slots behind the slot the node reports so that
        the slot is already present in the slot hashes sysvar.

        :param authority: Owner of the table
        :param payer: Pays the fee and the rent; defaults to the authority
        :param slot_offset: How far behind the current slot to derive from
        :return: The table address and the transaction signature
        """
        recent_slot = await self.rpc_client.get_slot() - slot_offset
        instruction, table = address_lookup_table.create_lookup_table(
            authority.pubkey(), (payer or authority).pubkey(), recent_slot
        )
        signature = await self._send(authority, payer, instruction)
        logging.info(f"Created lookup table {table} at slot {recent_slot}")
        return (table, signature)

    async def extend_lookup_table(
        self,
        table: Pubkey,
        authority: Keypair,
        addresses: List[Pubkey],
        payer: Optional[Keypair] = None,
        chunk_size: int = MAX_ADDRESSES_PER_EXTEND,
    ) -> List[Signature]:
        """
        Append ``addresses`` to ``table``, one transaction per ``chunk_size``
        addresses.

        The table is fetched first, so a batch that would take it past
        ``LOOKUP_TABLE_MAX_ADDRESSES`` is rejected before any chunk is sent.

        :return: Signatures of the extend transactions, in order
        :raises ValueError: If ``chunk_size`` is not positive or the table
            cannot hold the addresses
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if not addresses:
            return []

        current = len((await self.get_lookup_table(table)).addresses)
        if current + len(addresses) > LOOKUP_TABLE_MAX_ADDRESSES:
            raise ValueError(
                f"Lookup table {table} holds {current} addresses; adding {len(addresses)} "
                f"would exceed {LOOKUP_TABLE_MAX_ADDRESSES}"
            )

        payer_pubkey = (payer or authority).pubkey()
        signatures = []
        for start in range(0, len(addresses), chunk_size):
            chunk = addresses[start : start + chunk_size]
            instruction = address_lookup_table.extend_lookup_table(
                table, authority.pubkey(), chunk, payer_pubkey
            )
            signatures.append(await self._send(authority, payer, instruction))
            logging.info(f"Extended {table} with {len(chunk)} addresses")
        return signatures

    async def freeze_lookup_table(
        self, table: Pubkey, authority: Keypair, payer: Optional[Keypair] = None
    ) -> Signature:
        """Make ``table`` permanently immutable."""
        instruction = address_lookup_table.freeze_lookup_table(
            table, authority.pubkey()
        )
        return await self._send(authority, payer, instruction)

    async def deactivate_lookup_table(
        self, table: Pubkey, authority: Keypair, payer: Optional[Keypair] = None
    ) -> Signature:
        instruction = address_lookup_table.deactivate_lookup_table(
            table, authority.pubkey()
        )
        return await self._send(authority, payer, instruction)

    async def close_lookup_table(
        self,
        table: Pubkey,
        authority: Keypair,
        recipient: Optional[Pubkey] = None,
        payer: Optional[Keypair] = None,
    ) -> Signature:
        """Close a deactivated table; its rent goes to ``recipient``, the
        authority by default."""
        instruction = address_lookup_table.close_lookup_table(
            table, authority.pubkey(), recipient or authority.pubkey()
        )
        return await self._send(authority, payer, instruction)

    async def get_lookup_table(self, table: Pubkey) -> LookupTable:
        return await self.rpc_client.get_address_lookup_table(table)

    async def wait_until_closable(self, table: Pubkey) -> int:
        """
        Wait out the deactivation cooldown of ``table``.

        :return: The slot reached
        :raises ValueError: If the table has not been deactivated
        """
        account = await self.get_lookup_table(table)
        if account.is_active():
            raise ValueError(f"Lookup table {table} has not been deactivated")

        target = account.state.deactivation_slot + DEACTIVATION_COOLDOWN_SLOTS + 1
        logging.info(f"Waiting for slot {target} to close {table}")
        return await self.rpc_client.wait_for_slot(target)


def table_account(state: AddressLookupTableState) -> mock.Mock:
    """An account answer for ``get_account_info`` holding ``state``."""
    return mock.Mock(
        owner=address_lookup_table.ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
        data=state.serialize(),
    )


def sent_instruction_data(node: FakeNode) -> List[bytes]:
    """Data of the first instruction of every transaction ``node`` received."""
    return [
        bytes(VersionedTransaction.from_bytes(raw).message.instructions[0].data)
        for raw in node.sent_transactions()
    ]


class Test(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.rpc_client = make_test_client()
        self.tables = AddressLookupTableClient(self.rpc_client)
        self.authority = Keypair.from_seed(b"\x01" * 32)
        self.table = Pubkey(b"\x0c" * 32)

    async def asyncTearDown(self):
        await self.rpc_client.close()

    def _send_answers(self, **answers) -> FakeNode:
        return FakeNode(
            get_latest_blockhash=[FakeNode.blockhash()],
            send_raw_transaction=[Signature.default()],
            confirm_transaction=[FakeNode.confirmed()],
            **answers,
        )

    async def test_create_lookup_table(self):
        node = self._send_answers(get_slot=[1000])
        with node.patch():
            table, signature = await self.tables.create_lookup_table(self.authority)

        expected, _ = address_lookup_table.derive_lookup_table_address(
            self.authority.pubkey(), 999
        )
        self.assertEqual(table, expected)
        self.assertEqual(signature, Signature.default())

        (data,) = sent_instruction_data(node)
        self.assertEqual(data[:4], bytes([0, 0, 0, 0]))
        self.assertEqual(data[4:12], (999).to_bytes(8, "little"))

        (raw,) = node.sent_transactions()
        message = VersionedTransaction.from_bytes(raw).message
        self.assertEqual(message.account_keys[0], self.authority.pubkey())
        self.assertEqual(message.header.num_required_signatures, 1)

    async def test_extend_in_chunks(self):
        addresses = [Pubkey(bytes([index]) * 32) for index in range(1, 51)]
        node = self._send_answers(
            get_account_info=[table_account(AddressLookupTableState())]
        )
        with node.patch():
            signatures = await self.tables.extend_lookup_table(
                self.table, self.authority, addresses
            )

        self.assertEqual(signatures, [Signature.default()] * 2)
        counts = [
            int.from_bytes(data[4:12], "little") for data in sent_instruction_data(node)
        ]
        self.assertEqual(counts, [30, 20])
        self.assertEqual(node.methods()[0], "get_account_info")

    async def test_extend_limits(self):
        too_many = [Pubkey(index.to_bytes(32, "little")) for index in range(1, 258)]
        node = FakeNode(get_account_info=[table_account(AddressLookupTableState())])
        with node.patch():
            with self.assertRaises(ValueError):
                await self.tables.extend_lookup_table(
                    self.table, self.authority, too_many
                )
        with self.assertRaises(ValueError):
            await self.tables.extend_lookup_table(
                self.table, self.authority, too_many[:2], chunk_size=0
            )
        self.assertEqual(
            await self.tables.extend_lookup_table(self.table, self.authority, []), []
        )

    async def test_extend_counts_existing_addresses(self):
        existing = AddressLookupTableState(
            authority=self.authority.pubkey(),
            addresses=[Pubkey(index.to_bytes(32, "little")) for index in range(1, 241)],
        )
        batch = [Pubkey(index.to_bytes(32, "big")) for index in range(1, 31)]
        node = self._send_answers(get_account_info=[table_account(existing)])
        with node.patch():
            with self.assertRaises(ValueError):
                await self.tables.extend_lookup_table(self.table, self.authority, batch)
        self.assertEqual(node.methods(), ["get_account_info"])

        node = self._send_answers(get_account_info=[table_account(existing)])
        with node.patch():
            signatures = await self.tables.extend_lookup_table(
                self.table, self.authority, batch[:16]
            )
        self.assertEqual(len(signatures), 1)

    async def test_lifecycle_instructions(self):
        node = self._send_answers()
        with node.patch():
            await self.tables.freeze_lookup_table(self.table, self.authority)
            await self.tables.deactivate_lookup_table(self.table, self.authority)
            await self.tables.close_lookup_table(self.table, self.authority)

        freeze, deactivate, close = sent_instruction_data(node)
        self.assertEqual(freeze, bytes([1, 0, 0, 0]))
        self.assertEqual(deactivate, bytes([3, 0, 0, 0]))
        self.assertEqual(close, bytes([4, 0, 0, 0]))

    async def test_wait_until_closable(self):
        deactivated = AddressLookupTableState(
            deactivation_slot=1000, authority=self.authority.pubkey()
        )
        node = FakeNode(
            get_account_info=[table_account(deactivated)], get_slot=[1200, 1514]
        )
        with node.patch():
            self.assertEqual(await self.tables.wait_until_closable(self.table), 1514)
        self.assertEqual(node.methods(), ["get_account_info", "get_slot", "get_slot"])
        self.assertTrue(deactivated.is_closable(1514))

        node = FakeNode(get_account_info=[table_account(AddressLookupTableState())])
        with node.patch():
            with self.assertRaises(ValueError):
                await self.tables.wait_until_closable(self.table)


if __name__ == "__main__":
    unittest.main()
