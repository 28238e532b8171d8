# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Keypair files in the ``solana-keygen`` format.

Solana tooling stores a keypair as its 64-byte secret key, the 32-byte seed
followed by the 32-byte public key, written as a JSON array of integers. That
is the format of ``~/.config/solana/id.json`` and of the ``PRIVATE_KEY=[...]``
line the examples keep in ``.env``. The keys themselves are
``solders.keypair.Keypair`` objects.

Examples:
    Generate and persist a keypair::

        keypair = Keypair()
        store_keypair(keypair, "./id.json")
        assert load_keypair("./id.json").pubkey() == keypair.pubkey()

    Read the payer from the environment::

        payer = keypair_from_json(os.environ["PRIVATE_KEY"])
"""

import json
import os
import tempfile
import typing
import unittest

from solders.keypair import Keypair

SECRET_KEY_LENGTH = 64


def keypair_from_json(value: str) -> Keypair:
    """
    Parse a JSON array of 64 integers, e.g. ``[174,47,154,...]``.

    :raises ValueError: If the text is not JSON, not an array of 64 integers
        in 0..255, or not a valid secret key
    """
    data = json.loads(value)
    if not isinstance(data, list) or len(data) != SECRET_KEY_LENGTH:
        raise ValueError(f"Expected a JSON array of {SECRET_KEY_LENGTH} integers")
    for item in data:
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 255:
            raise ValueError(f"Secret key bytes must be integers in 0..255, got {item!r}")
    return Keypair.from_bytes(bytes(data))


def keypair_to_json(keypair: Keypair) -> str:
    return json.dumps(list(bytes(keypair)), separators=(",", ":"))


def load_keypair(path: str) -> Keypair:
    with open(path) as file:
        return keypair_from_json(file.read())


def store_keypair(keypair: Keypair, path: str):
    with open(path, "w") as file:
        file.write(keypair_to_json(keypair))


def make_keypairs(amount: int) -> typing.List[Keypair]:
    """Generate ``amount`` fresh keypairs, e.g. throwaway transfer recipients."""
    return [Keypair() for _ in range(amount)]


class Test(unittest.TestCase):
    def test_load_and_store(self):
        (file, path) = tempfile.mkstemp()
        os.close(file)
        start = Keypair()
        store_keypair(start, path)
        load = load_keypair(path)
        os.remove(path)

        self.assertEqual(start.pubkey(), load.pubkey())
        self.assertEqual(bytes(start), bytes(load))

    def test_json_format(self):
        keypair = Keypair.from_seed(bytes(range(32)))
        encoded = keypair_to_json(keypair)
        self.assertTrue(encoded.startswith("["))
        self.assertNotIn(" ", encoded)

        values = json.loads(encoded)
        self.assertEqual(values[:32], list(range(32)))
        self.assertEqual(bytes(values[32:]), bytes(keypair.pubkey()))
        self.assertEqual(keypair_from_json(encoded).pubkey(), keypair.pubkey())

    def test_invalid_json(self):
        with self.assertRaises(ValueError):
            keypair_from_json("[1, 2, 3]")
        with self.assertRaises(ValueError):
            keypair_from_json('{"key": 1}')
        with self.assertRaises(ValueError):
            keypair_from_json("not json")

    def test_non_integer_bytes(self):
        with self.assertRaises(ValueError):
            keypair_from_json('["a"]')
        with self.assertRaises(ValueError):
            keypair_from_json(json.dumps(["a"] * SECRET_KEY_LENGTH))
        with self.assertRaises(ValueError):
            keypair_from_json(json.dumps([256] * SECRET_KEY_LENGTH))
        with self.assertRaises(ValueError):
            keypair_from_json(json.dumps([1.5] * SECRET_KEY_LENGTH))

    def test_make_keypairs(self):
        keypairs = make_keypairs(22)
        self.assertEqual(len(keypairs), 22)
        self.assertEqual(len({keypair.pubkey() for keypair in keypairs}), 22)


if __name__ == "__main__":
    unittest.main()
