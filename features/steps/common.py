import typing

from behave import given, then, use_step_matcher
from solders.pubkey import Pubkey

# Use regular expressions
use_step_matcher("re")


@given(r"(?P<input_type>bytes|address) (?P<input_value>\S+)")
def given_input(context: typing.Any, input_type: str, input_value: str):
    context.input = parse_value(input_type, input_value)


@then(r"the result should be (?P<expected_type>bool|bytes|address) (?P<expected_value>\S+)")
def then_result(context: typing.Any, expected_type: str, expected_value: str):
    expected_val = parse_value(expected_type, expected_value)
    assert context.output == expected_val, (
        "Expected " + str(expected_value) + " but got " + str(context.output)
    )


def parse_value(input_type: str, input_value: str) -> typing.Any:
    if input_type == "bool":
        return parse_bool(input_value)
    elif input_type == "address":
        return Pubkey.from_string(input_value)
    elif input_type == "bytes":
        return parse_hex(input_value)
    raise Exception("Unrecognized input type")


def parse_hex(input_value: str):
    return bytes.fromhex(input_value.removeprefix("0x"))


def parse_bool(input_value: str):
    return input_value == "true"
