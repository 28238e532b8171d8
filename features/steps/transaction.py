import typing

from behave import given, then, use_step_matcher, when
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from solana_alt.async_client import (
    PACKET_DATA_SIZE,
    TransactionTooLarge,
    compile_transaction,
    compile_versioned_transaction,
    serialize_transaction,
)
from solana_alt.keypair import make_keypairs
from solana_alt.system_program import transfer_to_each

# Use regular expressions
use_step_matcher("re")


@given(r"a payer and (?P<count>\d+) transfer recipients")
def given_recipients(context: typing.Any, count: str):
    context.payer = Keypair.from_seed(b"\x01" * 32)
    context.recipients = [keypair.pubkey() for keypair in make_keypairs(int(count))]
    context.lookup_tables = []


@given(r"a lookup table holding the recipients")
def given_lookup_table(context: typing.Any):
    context.lookup_tables = [
        AddressLookupTableAccount(Pubkey(b"\x0c" * 32), context.recipients)
    ]


def transfers(context: typing.Any, lamports: str):
    return transfer_to_each(context.payer.pubkey(), context.recipients, int(lamports))


@when(r"I sign a legacy transaction paying each recipient (?P<lamports>\d+) lamports")
def when_legacy_transaction(context: typing.Any, lamports: str):
    context.transaction = compile_transaction(
        context.payer, transfers(context, lamports), None, Hash.default()
    )


@when(r"I sign a v0 transaction paying each recipient (?P<lamports>\d+) lamports")
def when_v0_transaction(context: typing.Any, lamports: str):
    context.transaction = compile_versioned_transaction(
        context.payer,
        transfers(context, lamports),
        None,
        Hash.default(),
        context.lookup_tables,
    )


@then(r"the transaction size should be (?P<size>\d+) bytes")
def then_size(context: typing.Any, size: str):
    actual = len(bytes(context.transaction))
    assert actual == int(size), f"Expected {size} bytes but got {actual}"


@then(r"the transaction should fit in a packet")
def then_fits(context: typing.Any):
    data = serialize_transaction(context.transaction)
    assert len(data) <= PACKET_DATA_SIZE
    assert bytes(VersionedTransaction.from_bytes(data)) == data


@then(r"the transaction should be rejected as too large")
def then_too_large(context: typing.Any):
    try:
        serialize_transaction(context.transaction)
    except TransactionTooLarge:
        return
    raise AssertionError("Expected TransactionTooLarge")


@then(r"the message should load (?P<count>\d+) writable addresses from the table")
def then_loaded(context: typing.Any, count: str):
    lookups = context.transaction.message.address_table_lookups
    assert len(lookups) == 1, f"Expected one table lookup but got {len(lookups)}"
    assert len(lookups[0].writable_indexes) == int(count)
    assert len(lookups[0].readonly_indexes) == 0
