import pytest

from arnelify_broker.codec import Base64Codec, JSONCodec, create_codec
from arnelify_broker.errors import DecodeError

VALUE = {"code": 200, "success": "Welcome to Arnelify Broker", "nested": [1, None, "ü"]}


@pytest.mark.parametrize("codec", [JSONCodec(), Base64Codec()])
def test_decode_inverts_encode(codec):
    assert codec.decode(codec.encode(VALUE)) == VALUE


def test_json_codec_is_compact():
    assert JSONCodec().encode({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'


def test_base64_codec_output_is_opaque():
    encoded = Base64Codec().encode(VALUE)
    assert "{" not in encoded


@pytest.mark.parametrize(
    "codec, message",
    [
        (JSONCodec(), "{not json"),
        (JSONCodec(), ""),
        (Base64Codec(), "***"),
        (Base64Codec(), "bm90IGpzb24="),  # base64 of "not json"
    ],
)
def test_malformed_input_fails_loudly(codec, message):
    with pytest.raises(DecodeError):
        codec.decode(message)


def test_create_codec_by_name():
    assert isinstance(create_codec("json"), JSONCodec)
    assert isinstance(create_codec("base64"), Base64Codec)
    with pytest.raises(ValueError):
        create_codec("msgpack")
