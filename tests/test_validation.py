import pytest

from pushchannels.models import Operation, ValidationError
from pushchannels.validation import mask_token, token_from_hex, token_to_hex, validate

from conftest import TOKEN


def test_channels_trimmed_and_deduplicated_in_first_seen_order():
    token, channels = validate(Operation.ENABLE, TOKEN, [" b", "a", "b ", "a", "c"])
    assert token == TOKEN
    assert channels == ("b", "a", "c")


def test_empty_names_dropped():
    _, channels = validate(Operation.DISABLE, TOKEN, ["a", "  ", ""])
    assert channels == ("a",)


@pytest.mark.parametrize("token", [b"", bytearray(), "a1b2", None])
def test_bad_token_rejected(token):
    with pytest.raises(ValidationError):
        validate(Operation.AUDIT, token)


@pytest.mark.parametrize("channels", [None, [], ["  "], "wwdc", ["ok", 3]])
def test_enable_requires_channel_names(channels):
    with pytest.raises(ValidationError):
        validate(Operation.ENABLE, TOKEN, channels)


@pytest.mark.parametrize("operation", [Operation.DISABLE_ALL, Operation.AUDIT])
def test_channels_ignored_for_token_wide_operations(operation):
    assert validate(operation, TOKEN, ["a", "b"]) == (TOKEN, None)
    assert validate(operation, TOKEN, None) == (TOKEN, None)


def test_bytes_like_token_copied_to_bytes():
    token, _ = validate(Operation.AUDIT, bytearray(TOKEN))
    assert isinstance(token, bytes)
    assert token == TOKEN


def test_hex_helpers():
    assert token_from_hex("<a1b2c3d4 e5f60718>") == TOKEN
    assert token_to_hex(TOKEN) == "a1b2c3d4e5f60718"
    assert mask_token(TOKEN) == "a1b2c3***"
    with pytest.raises(ValidationError):
        token_from_hex("xyz")


def test_non_iterable_channels_rejected():
    with pytest.raises(ValidationError, match="collection of names"):
        validate(Operation.ENABLE, TOKEN, 42)
