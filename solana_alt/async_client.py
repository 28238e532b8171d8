# Copyright © solana-alt contributors
# SPDX-License-Identifier: Apache-2.0

"""
Asynchronous client for the lookup-table demonstrations.

``RpcClient`` wraps ``solana.rpc.async_api.AsyncClient`` with the handful of
calls the scripts need, answers unwrapped from their ``value`` member, and the
one sequence every script repeats: fetch a blockhash, compile a message, sign
it, check it fits a packet, send it and wait for confirmation. Keys, messages
and transactions are ``solders`` types.

Key Features:
- **RpcClient**: slots, block heights, balances, lookup table accounts,
  airdrops and transaction submission at a configured commitment
- **FaucetClient**: airdrops on test networks, confirmed at ``finalized``
- **Transaction helpers**: legacy and version 0 compile-and-sign functions,
  plus ``send_and_confirm_*`` methods that submit and confirm them
- **Polling loops**: waiting for new blocks and for slots
- **Error Handling**: typed errors for missing accounts, failed or expired
  transactions, timeouts and oversized transactions

Examples:
    Query a balance::

        from solders.pubkey import Pubkey
        from solana_alt.async_client import RpcClient

        client = RpcClient("https://api.devnet.solana.com")
        balance = await client.get_balance(Pubkey.from_string("Vote111111111111111111111111111111111111111"))
        print(f"Balance: {balance} lamports")
        await client.close()

    Send transfers that reference a lookup table::

        table = await client.get_address_lookup_table(table_address)
        signature = await client.send_and_confirm_versioned_transaction(
            payer, instructions, lookup_tables=[table.lookup_table_account()]
        )
        print(f"https://explorer.solana.com/tx/{signature}?cluster=devnet")

    Fund a fresh account on devnet::

        faucet = FaucetClient(client)
        await faucet.fund_account(keypair.pubkey(), LAMPORTS_PER_SOL)

Error Handling:
    Errors raised by this module derive from ``ClientError``:

    - AccountNotFound: the requested account does not exist
    - TransactionTooLarge: the signed transaction exceeds the packet size
    - TransactionFailed: the transaction landed with an error
    - BlockhashExpired: the transaction can no longer land
    - ConfirmationTimeout: the configured wait ran out

    Transport and JSON-RPC failures surface as ``solana.exceptions.SolanaRpcException``
    and ``solana.rpc.core.RPCException``.
"""

import asyncio
import logging
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union
from unittest import mock

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed, Finalized
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from .address_lookup_table import (
    ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
    AddressLookupTableState,
    LookupTable,
)
from .metadata import Metadata
from .system_program import LAMPORTS_PER_SOL, transfer_to_each

# Largest serialized transaction a validator accepts (IPv6 MTU minus headers).
PACKET_DATA_SIZE = 1232

AnyTransaction = Union[Transaction, VersionedTransaction]


@dataclass
class ClientConfig:
    """Configuration parameters for the RPC client.

    Confirmation Parameters:
        commitment: Commitment used for queries and confirmation (default: confirmed)
        transaction_wait_in_seconds: Upper bound on a confirmation (default: 60)
        poll_interval_in_seconds: Sleep between polls (default: 0.5)

    Submission Parameters:
        skip_preflight: Skip the node's simulation before broadcast (default: False)
        max_retries: How often the node rebroadcasts; None leaves it to the node

    Network Parameters:
        timeout_in_seconds: Timeout of a single HTTP request (default: 60)
        api_key: Optional bearer token for RPC providers (default: None)

    Examples:
        Waiting for finality::

            config = ClientConfig(commitment=Finalized, transaction_wait_in_seconds=90)
            client = RpcClient(rpc_url, config)
    """

    commitment: Commitment = Confirmed
    transaction_wait_in_seconds: int = 60
    poll_interval_in_seconds: float = 0.5
    skip_preflight: bool = False
    max_retries: Optional[int] = None
    timeout_in_seconds: float = 60.0
    api_key: Optional[str] = None


def compile_transaction(
    payer: Keypair,
    instructions: Sequence[Instruction],
    signers: Optional[Sequence[Keypair]],
    recent_blockhash: Hash,
) -> Transaction:
    """Compile and sign a legacy transaction; every account key is written in full."""
    message = Message.new_with_blockhash(instructions, payer.pubkey(), recent_blockhash)
    return Transaction(_with_payer(payer, signers), message, recent_blockhash)


def compile_versioned_transaction(
    payer: Keypair,
    instructions: Sequence[Instruction],
    signers: Optional[Sequence[Keypair]],
    recent_blockhash: Hash,
    lookup_tables: Optional[Sequence[AddressLookupTableAccount]] = None,
) -> VersionedTransaction:
    """Compile and sign a version 0 transaction.

    Non-signer keys found in ``lookup_tables`` are referenced by their table
    index instead of being written out in full.
    """
    message = MessageV0.try_compile(
        payer.pubkey(), instructions, list(lookup_tables or []), recent_blockhash
    )
    return VersionedTransaction(message, _with_payer(payer, signers))


def serialize_transaction(transaction: AnyTransaction) -> bytes:
    """
    Wire bytes of a signed transaction.

    :raises TransactionTooLarge: If the bytes exceed ``PACKET_DATA_SIZE``
    """
    data = bytes(transaction)
    if len(data) > PACKET_DATA_SIZE:
        raise TransactionTooLarge(len(data))
    return data


def _with_payer(payer: Keypair, signers: Optional[Sequence[Keypair]]) -> List[Keypair]:
    signers = list(signers or [])
    if all(signer.pubkey() != payer.pubkey() for signer in signers):
        signers.insert(0, payer)
    return signers


class RpcClient:
    """Async client for a Solana JSON-RPC endpoint.

    Reads take an optional commitment that defaults to the one in
    ``ClientConfig``.

    Attributes:
        base_url: URL of the JSON-RPC endpoint
        client: The underlying solana.rpc.async_api.AsyncClient
        client_config: Timeouts, commitment and submission options

    Examples:
        Basic client setup::

            client = RpcClient("https://api.devnet.solana.com")
            slot = await client.get_slot()
            height = await client.get_block_height()

        Build, sign, send and confirm a legacy transaction::

            signature = await client.send_and_confirm_transaction(
                payer, transfer_to_each(payer.pubkey(), [recipient], 10_000_000)
            )
    """

    base_url: str
    client: AsyncClient
    client_config: ClientConfig

    def __init__(self, base_url: str, client_config: ClientConfig = ClientConfig()):
        self.base_url = base_url
        self.client_config = client_config

        headers = {Metadata.SOLANA_CLIENT_HEADER: Metadata.get_client_header_val()}
        if client_config.api_key:
            headers["Authorization"] = f"Bearer {client_config.api_key}"
        self.client = AsyncClient(
            base_url,
            commitment=client_config.commitment,
            timeout=client_config.timeout_in_seconds,
            extra_headers=headers,
        )

    async def close(self):
        await self.client.close()

    def _commitment(self, commitment: Optional[Commitment]) -> Commitment:
        return commitment or self.client_config.commitment

    #
    # Cluster state
    #

    async def get_slot(self, commitment: Optional[Commitment] = None) -> int:
        """The slot the node has reached at the given commitment."""
        return (await self.client.get_slot(self._commitment(commitment))).value

    async def get_block_height(self, commitment: Optional[Commitment] = None) -> int:
        """The current block height, the clock blockhash expiry is measured in."""
        return (await self.client.get_block_height(self._commitment(commitment))).value

    async def get_latest_blockhash(self, commitment: Optional[Commitment] = None):
        """
        Fetch a recent blockhash for a new transaction.

        :param commitment: Optional commitment override
        :return: ``blockhash`` and ``last_valid_block_height``, the last block
            height at which a transaction referencing it can land
        """
        resp = await self.client.get_latest_blockhash(self._commitment(commitment))
        return resp.value

    async def get_minimum_balance_for_rent_exemption(
        self, data_length: int, commitment: Optional[Commitment] = None
    ) -> int:
        resp = await self.client.get_minimum_balance_for_rent_exemption(
            data_length, self._commitment(commitment)
        )
        return resp.value

    #
    # Accounts
    #

    async def get_balance(
        self, pubkey: Pubkey, commitment: Optional[Commitment] = None
    ) -> int:
        """
        Retrieve the balance of an account in lamports.

        :param pubkey: Account to query
        :param commitment: Optional commitment override
        :return: Balance in lamports, 0 for accounts that do not exist
        """
        return (await self.client.get_balance(pubkey, self._commitment(commitment))).value

    async def get_address_lookup_table(
        self, pubkey: Pubkey, commitment: Optional[Commitment] = None
    ) -> LookupTable:
        """
        Fetch and decode a lookup table account.

        :param pubkey: Address of the lookup table
        :param commitment: Optional commitment override
        :return: The table address together with its decoded state
        :raises AccountNotFound: If the account does not exist
        :raises ValueError: If the account is not owned by the lookup table program
        """
        resp = await self.client.get_account_info(pubkey, self._commitment(commitment))
        account = resp.value
        if account is None:
            raise AccountNotFound(f"{pubkey}", pubkey)
        if account.owner != ADDRESS_LOOKUP_TABLE_PROGRAM_ID:
            raise ValueError(f"{pubkey} is owned by {account.owner}, not a lookup table")
        return LookupTable(pubkey, AddressLookupTableState.deserialize(bytes(account.data)))

    async def request_airdrop(
        self, pubkey: Pubkey, lamports: int, commitment: Optional[Commitment] = None
    ) -> Signature:
        """Ask a test network to credit ``lamports``; returns the airdrop signature."""
        resp = await self.client.request_airdrop(
            pubkey, lamports, self._commitment(commitment)
        )
        return resp.value

    #
    # Transactions
    #

    async def send_transaction(self, transaction: AnyTransaction) -> Signature:
        """Submit a signed transaction; raises TransactionTooLarge before sending
        anything that does not fit a packet."""
        opts = TxOpts(
            skip_confirmation=True,
            skip_preflight=self.client_config.skip_preflight,
            preflight_commitment=self.client_config.commitment,
            max_retries=self.client_config.max_retries,
        )
        resp = await self.client.send_raw_transaction(
            serialize_transaction(transaction), opts=opts
        )
        return resp.value

    async def confirm_transaction(
        self,
        signature: Signature,
        last_valid_block_height: int,
        commitment: Optional[Commitment] = None,
    ):
        """
        Wait until a transaction reaches the commitment, fails, or can no longer land.

        :param signature: Signature returned by ``send_transaction``
        :param last_valid_block_height: Expiry of the blockhash the transaction used
        :param commitment: Optional commitment override
        :return: The final signature status
        :raises TransactionFailed: If the transaction landed with an error
        :raises BlockhashExpired: If the block height passed the last valid height
        :raises ConfirmationTimeout: If the configured wait elapsed
        """
        commitment = self._commitment(commitment)
        wait = self.client_config.transaction_wait_in_seconds
        logging.info(f"Waiting for {signature} to reach {commitment}")
        try:
            resp = await asyncio.wait_for(
                self.client.confirm_transaction(
                    signature,
                    commitment,
                    sleep_seconds=self.client_config.poll_interval_in_seconds,
                    last_valid_block_height=last_valid_block_height,
                ),
                wait,
            )
        except (asyncio.TimeoutError, UnconfirmedTxError) as e:
            raise ConfirmationTimeout(signature, wait) from e
        except TransactionExpiredBlockheightExceededError as e:
            raise BlockhashExpired(signature, last_valid_block_height) from e

        status = resp.value[0]
        if status is not None and status.err is not None:
            raise TransactionFailed(signature, status.err)
        return status

    async def send_and_confirm_transaction(
        self,
        payer: Keypair,
        instructions: Sequence[Instruction],
        signers: Optional[Sequence[Keypair]] = None,
    ) -> Signature:
        """
        Compile, sign, send and confirm a legacy transaction.

        :param payer: Fee payer, always a signer
        :param instructions: Instructions in execution order
        :param signers: Additional signers the instructions require
        :return: The transaction signature
        """
        latest = await self.get_latest_blockhash()
        transaction = compile_transaction(
            payer, instructions, signers, latest.blockhash
        )
        return await self._send_and_confirm(transaction, latest.last_valid_block_height)

    async def send_and_confirm_versioned_transaction(
        self,
        payer: Keypair,
        instructions: Sequence[Instruction],
        signers: Optional[Sequence[Keypair]] = None,
        lookup_tables: Optional[Sequence[AddressLookupTableAccount]] = None,
    ) -> Signature:
        """
        Compile a version 0 message, sign it, send it and confirm it.

        :param payer: Fee payer, always a signer
        :param instructions: Instructions in execution order
        :param signers: Additional signers the instructions require
        :param lookup_tables: Tables the message may reference
        :return: The transaction signature
        """
        latest = await self.get_latest_blockhash()
        transaction = compile_versioned_transaction(
            payer, instructions, signers, latest.blockhash, lookup_tables
        )
        return await self._send_and_confirm(transaction, latest.last_valid_block_height)

    async def _send_and_confirm(
        self, transaction: AnyTransaction, last_valid_block_height: int
    ) -> Signature:
        signature = await self.send_transaction(transaction)
        logging.info(f"Submitted transaction {signature}")
        await self.confirm_transaction(signature, last_valid_block_height)
        return signature

    #
    # Waiting
    #

    async def wait_for_new_block(self, blocks: int = 1) -> int:
        """
        Wait until the block height has advanced by ``blocks``.

        A freshly extended lookup table can only be used from the next block on.

        :return: The block height reached
        """
        target = await self.get_block_height() + blocks
        while True:
            height = await self.get_block_height()
            if height >= target:
                return height
            await asyncio.sleep(self.client_config.poll_interval_in_seconds)

    async def wait_for_slot(self, slot: int) -> int:
        """Wait until the node reports ``slot`` or later; returns the slot reached."""
        while True:
            current = await self.get_slot()
            if current >= slot:
                return current
            await asyncio.sleep(self.client_config.poll_interval_in_seconds)


class FaucetClient:
    """Test networks fund accounts through an RPC airdrop. This is a thin wrapper around that."""

    rpc_client: RpcClient

    def __init__(self, rpc_client: RpcClient):
        self.rpc_client = rpc_client

    async def close(self):
        await self.rpc_client.close()

    async def fund_account(
        self, pubkey: Pubkey, lamports: int, wait_for_transaction=True
    ) -> Signature:
        """This requests an airdrop of the specified amount of lamports and waits for
        it to be finalized."""
        signature = await self.rpc_client.request_airdrop(pubkey, lamports)
        if wait_for_transaction:
            latest = await self.rpc_client.get_latest_blockhash()
            await self.rpc_client.confirm_transaction(
                signature, latest.last_valid_block_height, Finalized
            )
        return signature

    async def airdrop_if_needed(
        self,
        pubkey: Pubkey,
        minimum: int = LAMPORTS_PER_SOL,
        amount: int = LAMPORTS_PER_SOL,
    ) -> int:
        """Fund ``pubkey`` with ``amount`` if its balance is below ``minimum``;
        returns the resulting balance."""
        balance = await self.rpc_client.get_balance(pubkey)
        logging.info(f"Current balance of {pubkey} is {balance} lamports")
        if balance >= minimum:
            return balance

        logging.info(f"Airdropping {amount} lamports to {pubkey}")
        await self.fund_account(pubkey, amount)
        balance = await self.rpc_client.get_balance(pubkey)
        logging.info(f"New balance of {pubkey} is {balance} lamports")
        return balance


class ClientError(Exception):
    """Base class of the errors raised by this client"""


class AccountNotFound(ClientError):
    """The account was not found"""

    account: Pubkey

    def __init__(self, message: str, account: Pubkey):
        super().__init__(message)
        self.account = account


class TransactionTooLarge(ClientError):
    """The signed transaction does not fit in a packet"""

    size: int

    def __init__(self, size: int):
        super().__init__(f"Transaction too large: {size} > {PACKET_DATA_SIZE}")
        self.size = size


class TransactionFailed(ClientError):
    """The transaction was included in a block but its execution failed"""

    signature: Signature
    err: Any

    def __init__(self, signature: Signature, err: Any):
        super().__init__(f"Transaction {signature} failed: {err}")
        self.signature = signature
        self.err = err


class BlockhashExpired(ClientError):
    """The block height passed the last height at which the transaction could land"""

    signature: Signature
    last_valid_block_height: int

    def __init__(self, signature: Signature, last_valid_block_height: int):
        super().__init__(
            f"Transaction {signature} expired: block height exceeded {last_valid_block_height}"
        )
        self.signature = signature
        self.last_valid_block_height = last_valid_block_height


class ConfirmationTimeout(ClientError):
    """The transaction did not reach the requested commitment in time"""

    signature: Signature
    timeout: int

    def __init__(self, signature: Signature, timeout: int):
        super().__init__(f"Transaction {signature} timed out after {timeout}s")
        self.signature = signature
        self.timeout = timeout


class FakeNode:
    """Scripted node answers for tests, keyed by ``AsyncClient`` method name.

    Each answer is wrapped as a response whose ``value`` is the answer; an
    exception answer is raised instead. Answers are used in order and the
    last one repeats.
    """

    def __init__(self, **answers: List[Any]):
        self.answers = {method: list(values) for method, values in answers.items()}
        self.calls: List[Any] = []

    def _method(self, method: str):
        async def answer(client: AsyncClient, *args: Any, **kwargs: Any) -> Any:
            self.calls.append((method, args, kwargs))
            answers = self.answers[method]
            value = answers.pop(0) if len(answers) > 1 else answers[0]
            if isinstance(value, Exception):
                raise value
            return mock.Mock(value=value)

        return answer

    def patch(self):
        """Replace the scripted ``AsyncClient`` methods for the duration of a ``with`` block."""
        return mock.patch.multiple(
            AsyncClient, **{method: self._method(method) for method in self.answers}
        )

    def methods(self) -> List[str]:
        return [method for method, _, _ in self.calls]

    def sent_transactions(self) -> List[bytes]:
        return [args[0] for method, args, _ in self.calls if method == "send_raw_transaction"]

    @staticmethod
    def blockhash(last_valid_block_height: int = 100) -> Any:
        return mock.Mock(
            blockhash=Hash.default(), last_valid_block_height=last_valid_block_height
        )

    @staticmethod
    def confirmed(err: Optional[Dict[str, Any]] = None) -> List[Any]:
        return [mock.Mock(err=err)]


def make_test_client(config: Optional[ClientConfig] = None) -> RpcClient:
    with mock.patch(
        "solana_alt.async_client.Metadata.get_client_header_val",
        return_value="py/solana-alt/test",
    ):
        return RpcClient(
            "http://localhost:8899",
            config or ClientConfig(poll_interval_in_seconds=0, transaction_wait_in_seconds=5),
        )


class Test(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.client = make_test_client()
        self.payer = Keypair.from_seed(b"\x01" * 32)

    async def asyncTearDown(self):
        await self.client.close()

    def _recipients(self, count: int) -> List[Pubkey]:
        return [Pubkey(bytes([index]) * 32) for index in range(2, 2 + count)]

    async def test_reads_unwrap_values(self):
        node = FakeNode(get_slot=[42], get_balance=[7])
        with node.patch():
            self.assertEqual(await self.client.get_slot(), 42)
            self.assertEqual(await self.client.get_balance(self.payer.pubkey()), 7)
        self.assertEqual(node.calls[0][1], (Confirmed,))
        self.assertEqual(node.calls[1][1], (self.payer.pubkey(), Confirmed))

    async def test_rpc_errors_propagate(self):
        node = FakeNode(get_slot=[RPCException("Invalid params")])
        with node.patch():
            with self.assertRaises(RPCException):
                await self.client.get_slot()

    async def test_get_address_lookup_table(self):
        table = Pubkey(b"\x0c" * 32)
        state = AddressLookupTableState(
            authority=self.payer.pubkey(), addresses=[Pubkey(b"\x0d" * 32)]
        )
        account = mock.Mock(owner=ADDRESS_LOOKUP_TABLE_PROGRAM_ID, data=state.serialize())
        with FakeNode(get_account_info=[account]).patch():
            fetched = await self.client.get_address_lookup_table(table)
        self.assertEqual(fetched.key, table)
        self.assertEqual(fetched.state, state)

        with FakeNode(get_account_info=[None]).patch():
            with self.assertRaises(AccountNotFound):
                await self.client.get_address_lookup_table(table)

        wrong_owner = mock.Mock(owner=Pubkey.default(), data=state.serialize())
        with FakeNode(get_account_info=[wrong_owner]).patch():
            with self.assertRaises(ValueError):
                await self.client.get_address_lookup_table(table)

    async def test_confirm_transaction(self):
        node = FakeNode(confirm_transaction=[FakeNode.confirmed()])
        with node.patch():
            status = await self.client.confirm_transaction(Signature.default(), 100)
        self.assertIsNone(status.err)
        method, args, kwargs = node.calls[0]
        self.assertEqual(args, (Signature.default(), Confirmed))
        self.assertEqual(kwargs["last_valid_block_height"], 100)

    async def test_confirm_transaction_failures(self):
        failed = FakeNode(
            confirm_transaction=[
                FakeNode.confirmed({"InstructionError": [0, "InvalidAccountData"]})
            ]
        )
        with failed.patch():
            with self.assertRaises(TransactionFailed):
                await self.client.confirm_transaction(Signature.default(), 100)

        expired = FakeNode(
            confirm_transaction=[
                TransactionExpiredBlockheightExceededError("block height exceeded")
            ]
        )
        with expired.patch():
            with self.assertRaises(BlockhashExpired) as context:
                await self.client.confirm_transaction(Signature.default(), 100)
        self.assertEqual(context.exception.last_valid_block_height, 100)

        unconfirmed = FakeNode(
            confirm_transaction=[UnconfirmedTxError("Unable to confirm transaction")]
        )
        with unconfirmed.patch():
            with self.assertRaises(ConfirmationTimeout):
                await self.client.confirm_transaction(Signature.default(), 100)

    async def test_confirmation_timeout(self):
        async def never_confirms(*args: Any, **kwargs: Any):
            await asyncio.sleep(10)

        self.client.client_config = ClientConfig(transaction_wait_in_seconds=0)
        with mock.patch.object(
            AsyncClient, "confirm_transaction", side_effect=never_confirms
        ):
            with self.assertRaises(ConfirmationTimeout) as context:
                await self.client.confirm_transaction(Signature.default(), 100)
        self.assertEqual(context.exception.timeout, 0)
        self.assertIsInstance(context.exception, ClientError)

    async def test_send_and_confirm_versioned_transaction(self):
        recipients = self._recipients(22)
        table = LookupTable(
            Pubkey(b"\xff" * 32),
            AddressLookupTableState(authority=self.payer.pubkey(), addresses=recipients),
        )
        instructions = transfer_to_each(
            self.payer.pubkey(), recipients, LAMPORTS_PER_SOL // 100
        )
        node = FakeNode(
            get_latest_blockhash=[FakeNode.blockhash()],
            send_raw_transaction=[Signature.default()],
            confirm_transaction=[FakeNode.confirmed()],
        )
        with node.patch():
            signature = await self.client.send_and_confirm_versioned_transaction(
                self.payer, instructions, lookup_tables=[table.lookup_table_account()]
            )
        self.assertEqual(signature, Signature.default())
        self.assertEqual(
            node.methods(),
            ["get_latest_blockhash", "send_raw_transaction", "confirm_transaction"],
        )

        (sent,) = node.sent_transactions()
        self.assertLessEqual(len(sent), PACKET_DATA_SIZE)
        message = VersionedTransaction.from_bytes(sent).message
        self.assertIsInstance(message, MessageV0)
        self.assertEqual(len(message.address_table_lookups), 1)
        self.assertEqual(len(message.address_table_lookups[0].writable_indexes), 22)
        self.assertEqual(message.account_keys[0], self.payer.pubkey())

    async def test_oversized_legacy_transaction_is_not_sent(self):
        instructions = transfer_to_each(
            self.payer.pubkey(), self._recipients(22), LAMPORTS_PER_SOL // 100
        )
        node = FakeNode(get_latest_blockhash=[FakeNode.blockhash()])
        with node.patch():
            with self.assertRaises(TransactionTooLarge) as context:
                await self.client.send_and_confirm_transaction(self.payer, instructions)
        self.assertEqual(context.exception.size, 1244)
        self.assertEqual(node.methods(), ["get_latest_blockhash"])

    def test_signers_include_payer_once(self):
        other = Keypair.from_seed(b"\x02" * 32)
        self.assertEqual(
            [signer.pubkey() for signer in _with_payer(self.payer, [other])],
            [self.payer.pubkey(), other.pubkey()],
        )
        self.assertEqual(
            [signer.pubkey() for signer in _with_payer(self.payer, [self.payer])],
            [self.payer.pubkey()],
        )

    async def test_wait_for_new_block(self):
        node = FakeNode(get_block_height=[10, 10, 10, 11])
        with node.patch():
            self.assertEqual(await self.client.wait_for_new_block(), 11)
        self.assertEqual(node.methods().count("get_block_height"), 4)

    async def test_wait_for_slot(self):
        node = FakeNode(get_slot=[7, 8, 9])
        with node.patch():
            self.assertEqual(await self.client.wait_for_slot(9), 9)
        self.assertEqual(node.methods().count("get_slot"), 3)

    async def test_airdrop_if_needed(self):
        node = FakeNode(
            get_balance=[0, LAMPORTS_PER_SOL],
            request_airdrop=[Signature.default()],
            get_latest_blockhash=[FakeNode.blockhash()],
            confirm_transaction=[FakeNode.confirmed()],
        )
        faucet = FaucetClient(self.client)
        with node.patch():
            balance = await faucet.airdrop_if_needed(self.payer.pubkey())
        self.assertEqual(balance, LAMPORTS_PER_SOL)
        self.assertIn("request_airdrop", node.methods())
        confirm = [call for call in node.calls if call[0] == "confirm_transaction"]
        self.assertEqual(confirm[0][1], (Signature.default(), Finalized))

        funded = FakeNode(get_balance=[2 * LAMPORTS_PER_SOL])
        with funded.patch():
            await faucet.airdrop_if_needed(self.payer.pubkey())
        self.assertEqual(funded.methods(), ["get_balance"])


if __name__ == "__main__":
    unittest.main()
