# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Address lookup table program: instructions and account state.

An address lookup table is an on-chain account that stores up to 256
addresses. A version 0 transaction can reference a table and then name any
of its addresses with a one-byte index instead of the full 32 bytes, which is
what makes large batches (for example dozens of transfers) fit into a single
1232-byte packet.

Table lifecycle, as driven by this module's instruction builders:

1. **Create** at a program derived address seeded by the authority and a
   recent slot (``create_lookup_table``).
2. **Extend** with new addresses, at most about 30 per transaction
   (``extend_lookup_table``). Extended addresses become usable one slot later.
3. Optionally **freeze**, making the table immutable (``freeze_lookup_table``).
4. **Deactivate** (``deactivate_lookup_table``). The table keeps resolving
   until the deactivation slot leaves the slot-hashes window, roughly 513 slots.
5. **Close** and reclaim the rent (``close_lookup_table``).

Account data layout (``AddressLookupTableState``)::

    offset  size  field
    0       4     type index (1 = lookup table)
    4       8     deactivation slot (u64::MAX while active)
    12      8     last extended slot
    20      1     last extended slot start index
    21      1     authority option tag
    22      32    authority (present when the tag is 1)
    56      32*n  addresses

Examples:
    Building the instructions for a new table::

        instruction, table = create_lookup_table(
            authority=payer.pubkey(),
            payer=payer.pubkey(),
            recent_slot=await rpc_client.get_slot() - 1,
        )
        extend = extend_lookup_table(
            table, payer.pubkey(), recipients, payer=payer.pubkey()
        )

    Decoding a fetched account::

        state = AddressLookupTableState.deserialize(account.data)
        print(state.is_active(), len(state.addresses))
"""

from __future__ import annotations

import struct
import typing
import unittest
from dataclasses import dataclass, field
from typing import List, Optional

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .system_program import SYSTEM_PROGRAM_ID

ADDRESS_LOOKUP_TABLE_PROGRAM_ID = Pubkey.from_string(
    "AddressLookupTab1e1111111111111111111111111"
)

MAX_U64 = 2**64 - 1
PUBKEY_LENGTH = 32

LOOKUP_TABLE_MAX_ADDRESSES = 256
LOOKUP_TABLE_META_SIZE = 56
# Keeps an extend transaction under the packet size limit.
MAX_ADDRESSES_PER_EXTEND = 30
# Length of the slot hashes sysvar; a deactivated table can be closed after it.
DEACTIVATION_COOLDOWN_SLOTS = 513

LOOKUP_TABLE_TYPE_INDEX = 1

# type index, deactivation slot, last extended slot, start index, authority tag
_META_FORMAT = "<IQQBB"


class InstructionIndex:
    """ProgramInstruction enum discriminators (bincode u32)."""

    CreateLookupTable: int = 0
    FreezeLookupTable: int = 1
    ExtendLookupTable: int = 2
    DeactivateLookupTable: int = 3
    CloseLookupTable: int = 4


def derive_lookup_table_address(
    authority: Pubkey, recent_slot: int
) -> typing.Tuple[Pubkey, int]:
    """The table address and bump for ``authority`` created at ``recent_slot``."""
    return Pubkey.find_program_address(
        [bytes(authority), struct.pack("<Q", recent_slot)],
        ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
    )


def create_lookup_table(
    authority: Pubkey, payer: Pubkey, recent_slot: int
) -> typing.Tuple[Instruction, Pubkey]:
    """Create a table owned by ``authority``; ``payer`` funds its rent.

    ``recent_slot`` must be a slot still present in the slot hashes sysvar,
    which is why callers use a slot slightly behind the current one.
    """
    lookup_table_address, bump_seed = derive_lookup_table_address(
        authority, recent_slot
    )
    instruction = Instruction(
        program_id=ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
        data=struct.pack(
            "<IQB", InstructionIndex.CreateLookupTable, recent_slot, bump_seed
        ),
        accounts=[
            AccountMeta(pubkey=lookup_table_address, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
            AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
    )
    return (instruction, lookup_table_address)


def _authority_instruction(
    index: int, lookup_table: Pubkey, authority: Pubkey
) -> Instruction:
    return Instruction(
        program_id=ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
        data=struct.pack("<I", index),
        accounts=[
            AccountMeta(pubkey=lookup_table, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ],
    )


def freeze_lookup_table(lookup_table: Pubkey, authority: Pubkey) -> Instruction:
    return _authority_instruction(
        InstructionIndex.FreezeLookupTable, lookup_table, authority
    )


def extend_lookup_table(
    lookup_table: Pubkey,
    authority: Pubkey,
    addresses: List[Pubkey],
    payer: Optional[Pubkey] = None,
) -> Instruction:
    """Append ``addresses`` to the table.

    When ``payer`` is given it tops up the rent for the larger account; the
    system program is then included so the table program can transfer it.
    """
    if len(addresses) == 0:
        raise ValueError("At least one address is required to extend a table")

    data = struct.pack("<IQ", InstructionIndex.ExtendLookupTable, len(addresses))
    data += b"".join(bytes(address) for address in addresses)

    accounts = [
        AccountMeta(pubkey=lookup_table, is_signer=False, is_writable=True),
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
    ]
    if payer is not None:
        accounts.append(AccountMeta(pubkey=payer, is_signer=True, is_writable=True))
        accounts.append(
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False)
        )

    return Instruction(
        program_id=ADDRESS_LOOKUP_TABLE_PROGRAM_ID, data=data, accounts=accounts
    )


def deactivate_lookup_table(lookup_table: Pubkey, authority: Pubkey) -> Instruction:
    return _authority_instruction(
        InstructionIndex.DeactivateLookupTable, lookup_table, authority
    )


def close_lookup_table(
    lookup_table: Pubkey, authority: Pubkey, recipient: Pubkey
) -> Instruction:
    """Close a deactivated table and send its lamports to ``recipient``."""
    return Instruction(
        program_id=ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
        data=struct.pack("<I", InstructionIndex.CloseLookupTable),
        accounts=[
            AccountMeta(pubkey=lookup_table, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
            AccountMeta(pubkey=recipient, is_signer=False, is_writable=True),
        ],
    )


@dataclass
class AddressLookupTableState:
    """Decoded contents of a lookup table account."""

    deactivation_slot: int = MAX_U64
    last_extended_slot: int = 0
    last_extended_slot_start_index: int = 0
    authority: Optional[Pubkey] = None
    addresses: List[Pubkey] = field(default_factory=list)

    def is_active(self) -> bool:
        return self.deactivation_slot == MAX_U64

    def is_frozen(self) -> bool:
        return self.authority is None

    def is_closable(self, current_slot: int) -> bool:
        """A deactivated table can be closed once its deactivation slot has aged out."""
        if self.is_active():
            return False
        return current_slot > self.deactivation_slot + DEACTIVATION_COOLDOWN_SLOTS

    @staticmethod
    def deserialize(data: bytes) -> AddressLookupTableState:
        """
        Decode raw account data.

        :raises ValueError: If the data is too short, has the wrong type index
            or a partial address at the end
        """
        if len(data) < LOOKUP_TABLE_META_SIZE:
            raise ValueError(
                f"Lookup table account data is {len(data)} bytes, expected at least {LOOKUP_TABLE_META_SIZE}"
            )

        (
            type_index,
            deactivation_slot,
            last_extended_slot,
            last_extended_slot_start_index,
            authority_tag,
        ) = struct.unpack_from(_META_FORMAT, data)
        if type_index != LOOKUP_TABLE_TYPE_INDEX:
            raise ValueError(f"Account is not a lookup table: type index {type_index}")

        authority = None
        if authority_tag == 1:
            offset = struct.calcsize(_META_FORMAT)
            authority = Pubkey(data[offset : offset + PUBKEY_LENGTH])

        serialized_addresses = data[LOOKUP_TABLE_META_SIZE:]
        if len(serialized_addresses) % PUBKEY_LENGTH != 0:
            raise ValueError("Lookup table address data is not a multiple of 32 bytes")
        addresses = [
            Pubkey(serialized_addresses[start : start + PUBKEY_LENGTH])
            for start in range(0, len(serialized_addresses), PUBKEY_LENGTH)
        ]

        return AddressLookupTableState(
            deactivation_slot,
            last_extended_slot,
            last_extended_slot_start_index,
            authority,
            addresses,
        )

    def serialize(self) -> bytes:
        meta = struct.pack(
            _META_FORMAT,
            LOOKUP_TABLE_TYPE_INDEX,
            self.deactivation_slot,
            self.last_extended_slot,
            self.last_extended_slot_start_index,
            0 if self.authority is None else 1,
        )
        if self.authority is not None:
            meta += bytes(self.authority)
        meta += bytes(LOOKUP_TABLE_META_SIZE - len(meta))
        return meta + b"".join(bytes(address) for address in self.addresses)


@dataclass
class LookupTable:
    """A lookup table address together with its fetched state."""

    key: Pubkey
    state: AddressLookupTableState

    @property
    def addresses(self) -> List[Pubkey]:
        return self.state.addresses

    def is_active(self) -> bool:
        return self.state.is_active()

    def index_of(self, address: Pubkey) -> Optional[int]:
        try:
            return self.state.addresses.index(address)
        except ValueError:
            return None

    def lookup_table_account(self) -> AddressLookupTableAccount:
        """The form ``MessageV0.try_compile`` takes."""
        return AddressLookupTableAccount(key=self.key, addresses=self.addresses)


class Test(unittest.TestCase):
    def setUp(self):
        self.authority = Pubkey(b"\x0a" * 32)
        self.payer = Pubkey(b"\x0b" * 32)

    def test_create_lookup_table(self):
        instruction, table = create_lookup_table(self.authority, self.payer, 1234)
        expected_table, bump = derive_lookup_table_address(self.authority, 1234)

        self.assertEqual(table, expected_table)
        self.assertFalse(table.is_on_curve())
        self.assertEqual(instruction.program_id, ADDRESS_LOOKUP_TABLE_PROGRAM_ID)
        self.assertEqual(
            bytes(instruction.data),
            (0).to_bytes(4, "little") + (1234).to_bytes(8, "little") + bytes([bump]),
        )
        self.assertEqual(
            instruction.accounts,
            [
                AccountMeta(table, False, True),
                AccountMeta(self.authority, True, False),
                AccountMeta(self.payer, True, True),
                AccountMeta(SYSTEM_PROGRAM_ID, False, False),
            ],
        )

    def test_table_address_depends_on_slot(self):
        first, _ = derive_lookup_table_address(self.authority, 1)
        second, _ = derive_lookup_table_address(self.authority, 2)
        self.assertNotEqual(first, second)

    def test_extend_lookup_table(self):
        table = Pubkey(b"\x0c" * 32)
        addresses = [Pubkey(bytes([i]) * 32) for i in range(1, 4)]
        instruction = extend_lookup_table(table, self.authority, addresses, self.payer)

        expected_data = (2).to_bytes(4, "little") + (3).to_bytes(8, "little")
        expected_data += b"".join(bytes(address) for address in addresses)
        self.assertEqual(bytes(instruction.data), expected_data)
        self.assertEqual(len(instruction.accounts), 4)
        self.assertEqual(instruction.accounts[2], AccountMeta(self.payer, True, True))

        without_payer = extend_lookup_table(table, self.authority, addresses)
        self.assertEqual(len(without_payer.accounts), 2)

        with self.assertRaises(ValueError):
            extend_lookup_table(table, self.authority, [])

    def test_simple_instructions(self):
        table = Pubkey(b"\x0c" * 32)
        self.assertEqual(
            bytes(freeze_lookup_table(table, self.authority).data),
            bytes([1, 0, 0, 0]),
        )
        self.assertEqual(
            bytes(deactivate_lookup_table(table, self.authority).data),
            bytes([3, 0, 0, 0]),
        )
        close = close_lookup_table(table, self.authority, self.payer)
        self.assertEqual(bytes(close.data), bytes([4, 0, 0, 0]))
        self.assertEqual(len(close.accounts), 3)
        self.assertEqual(close.accounts[2], AccountMeta(self.payer, False, True))

    def test_state_layout(self):
        addresses = [Pubkey(bytes([i]) * 32) for i in range(1, 3)]
        state = AddressLookupTableState(
            deactivation_slot=MAX_U64,
            last_extended_slot=77,
            last_extended_slot_start_index=0,
            authority=self.authority,
            addresses=addresses,
        )
        data = state.serialize()
        self.assertEqual(len(data), LOOKUP_TABLE_META_SIZE + 64)
        self.assertEqual(data[:4], bytes([1, 0, 0, 0]))
        self.assertEqual(data[4:12], b"\xff" * 8)
        self.assertEqual(data[21], 1)
        self.assertEqual(data[22:54], bytes(self.authority))

        decoded = AddressLookupTableState.deserialize(data)
        self.assertEqual(decoded, state)
        self.assertTrue(decoded.is_active())
        self.assertFalse(decoded.is_frozen())

    def test_frozen_and_deactivated_state(self):
        state = AddressLookupTableState(deactivation_slot=1000, authority=None)
        decoded = AddressLookupTableState.deserialize(state.serialize())
        self.assertTrue(decoded.is_frozen())
        self.assertFalse(decoded.is_active())
        self.assertFalse(decoded.is_closable(1000 + DEACTIVATION_COOLDOWN_SLOTS))
        self.assertTrue(decoded.is_closable(1001 + DEACTIVATION_COOLDOWN_SLOTS))

    def test_invalid_state(self):
        with self.assertRaises(ValueError):
            AddressLookupTableState.deserialize(b"\x01\x00\x00\x00")
        with self.assertRaises(ValueError):
            AddressLookupTableState.deserialize(bytes(LOOKUP_TABLE_META_SIZE))
        data = AddressLookupTableState(authority=self.authority).serialize()
        with self.assertRaises(ValueError):
            AddressLookupTableState.deserialize(data + b"\x01")

    def test_lookup_table(self):
        addresses = [Pubkey(bytes([i]) * 32) for i in range(1, 3)]
        table = LookupTable(
            Pubkey(b"\x0c" * 32), AddressLookupTableState(addresses=addresses)
        )
        self.assertEqual(table.index_of(addresses[1]), 1)
        self.assertIsNone(table.index_of(self.authority))

        account = table.lookup_table_account()
        self.assertEqual(account.key, table.key)
        self.assertEqual(list(account.addresses), addresses)


if __name__ == "__main__":
    unittest.main()
