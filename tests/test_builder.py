import dataclasses

import pytest

from pushchannels.builder import RequestBuilder
from pushchannels.models import Operation
from pushchannels.validation import validate

from conftest import TOKEN

DEVICE_PATH = "/v1/push/sub-key/sub-c-test/devices/a1b2c3d4e5f60718"


def test_enable_carries_deduplicated_channels(builder):
    token, channels = validate(Operation.ENABLE, TOKEN, ["a", "a", "b"])
    request = builder.build(Operation.ENABLE, token, channels)
    assert request.channels == ("a", "b")
    assert request.path == DEVICE_PATH
    assert request.query_string() == "add=a,b&type=apns&uuid=tester"
    assert request.retry_safe


def test_disable_uses_remove_param(builder):
    request = builder.build(Operation.DISABLE, TOKEN, ("wwdc", "google.io"))
    assert request.path == DEVICE_PATH
    assert request.params[0] == ("remove", "wwdc,google.io")


def test_disable_all_ignores_channels(builder):
    with_channels = builder.build(Operation.DISABLE_ALL, *validate(Operation.DISABLE_ALL, TOKEN, ["x"]))
    without = builder.build(Operation.DISABLE_ALL, *validate(Operation.DISABLE_ALL, TOKEN))
    assert with_channels.path == without.path == DEVICE_PATH + "/remove"
    assert with_channels.params == without.params == (("type", "apns"), ("uuid", "tester"))
    assert with_channels.channels is None


def test_audit_has_no_channel_params(builder):
    request = builder.build(Operation.AUDIT, TOKEN, None)
    assert request.path == DEVICE_PATH
    assert dict(request.params) == {"type": "apns", "uuid": "tester"}


def test_auth_key_and_push_type():
    builder = RequestBuilder("sub-c-test", auth_key="secret", push_type="gcm")
    request = builder.build(Operation.AUDIT, TOKEN)
    assert request.query_string() == "type=gcm&auth=secret"
    assert request.push_type == "gcm"


def test_descriptor_is_immutable_and_unique_per_call(builder):
    first = builder.build(Operation.AUDIT, TOKEN)
    second = builder.build(Operation.AUDIT, TOKEN)
    assert first.request_id != second.request_id
    with pytest.raises(dataclasses.FrozenInstanceError):
        first.path = "/elsewhere"


@pytest.mark.parametrize("kwargs", [{"subscribe_key": ""}, {"subscribe_key": "k", "push_type": "sms"}])
def test_bad_builder_settings(kwargs):
    with pytest.raises(ValueError):
        RequestBuilder(**kwargs)


def test_comma_in_channel_name_stays_one_channel(builder):
    single = builder.build(Operation.ENABLE, TOKEN, ("a,b",))
    pair = builder.build(Operation.ENABLE, TOKEN, ("a", "b"))
    assert single.query_string() != pair.query_string()
    assert single.params[0] == ("add", "a%2Cb")
    assert pair.params[0] == ("add", "a,b")


def test_channel_names_and_credentials_percent_encoded():
    builder = RequestBuilder("sub c", uuid="me&you", auth_key="k=1")
    request = builder.build(Operation.DISABLE, TOKEN, ("news/eu", "café chat"))
    assert request.path.startswith("/v1/push/sub-key/sub%20c/devices/")
    assert request.query_string() == "remove=news%2Feu,caf%C3%A9%20chat&type=apns&uuid=me%26you&auth=k%3D1"
    assert request.channels == ("news/eu", "café chat")
