import typing

from behave import then, use_step_matcher, when
from solders.pubkey import Pubkey

from solana_alt.address_lookup_table import (
    ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
    derive_lookup_table_address,
)

# Use regular expressions
use_step_matcher("re")


@when(r"I check whether the key is on the curve")
def when_on_curve(context: typing.Any):
    context.output = Pubkey(context.input).is_on_curve()


@when(r"I find the program address for seeds \[(?P<seeds>.*)\]")
def when_find_program_address(context: typing.Any, seeds: str):
    context.seeds = [seed.strip().encode() for seed in seeds.split(",") if seed.strip()]
    context.program_id = context.input
    context.output, context.bump = Pubkey.find_program_address(
        context.seeds, context.program_id
    )


@when(r"I derive the lookup table address for slot (?P<slot>\d+)")
def when_derive_lookup_table(context: typing.Any, slot: str):
    context.seeds = [bytes(context.input), int(slot).to_bytes(8, "little")]
    context.program_id = ADDRESS_LOOKUP_TABLE_PROGRAM_ID
    context.output, context.bump = derive_lookup_table_address(
        context.input, int(slot)
    )


@then(r"the derived address should be off the curve")
def then_off_curve(context: typing.Any):
    assert not context.output.is_on_curve(), f"{context.output} is on the curve"
    assert 0 <= context.bump <= 255, f"Invalid bump {context.bump}"


@then(r"the derived address should be reproducible from its bump")
def then_reproducible(context: typing.Any):
    address = Pubkey.create_program_address(
        context.seeds + [bytes([context.bump])], context.program_id
    )
    assert address == context.output, f"Expected {context.output} but got {address}"
