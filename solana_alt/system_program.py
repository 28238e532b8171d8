# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Lamport transfers and SOL conversions.

Only the transfer is needed by the lookup-table demonstrations; the lookup
table program itself invokes the system program to fund and allocate table
accounts, which is why the program id is exported as well.
"""

import unittest
from typing import List, Sequence

from solana.constants import LAMPORTS_PER_SOL
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import TransferParams, transfer

__all__ = [
    "LAMPORTS_PER_SOL",
    "SYSTEM_PROGRAM_ID",
    "lamports_to_sol",
    "sol_to_lamports",
    "transfer_to_each",
]


def transfer_to_each(
    from_pubkey: Pubkey, recipients: Sequence[Pubkey], lamports: int
) -> List[Instruction]:
    """One transfer of ``lamports`` from ``from_pubkey`` to every recipient, in order."""
    return [
        transfer(
            TransferParams(
                from_pubkey=from_pubkey, to_pubkey=recipient, lamports=lamports
            )
        )
        for recipient in recipients
    ]


def sol_to_lamports(sol: float) -> int:
    return int(round(sol * LAMPORTS_PER_SOL))


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


class Test(unittest.TestCase):
    def test_transfer_to_each(self):
        sender = Pubkey(b"\x01" * 32)
        recipients = [Pubkey(b"\x02" * 32), Pubkey(b"\x03" * 32)]
        instructions = transfer_to_each(sender, recipients, LAMPORTS_PER_SOL // 100)

        self.assertEqual(len(instructions), 2)
        first = instructions[0]
        self.assertEqual(first.program_id, SYSTEM_PROGRAM_ID)
        self.assertEqual(bytes(first.data).hex(), "02000000" + "8096980000000000")
        self.assertEqual(
            first.accounts,
            [
                AccountMeta(sender, True, True),
                AccountMeta(recipients[0], False, True),
            ],
        )
        self.assertEqual(instructions[1].accounts[1].pubkey, recipients[1])

    def test_conversions(self):
        self.assertEqual(sol_to_lamports(0.01), 10_000_000)
        self.assertEqual(lamports_to_sol(1_500_000_000), 1.5)


if __name__ == "__main__":
    unittest.main()
