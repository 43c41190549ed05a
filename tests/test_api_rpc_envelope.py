import pytest

from milobanana.api.rpc.envelope import error_response, success_response, validate_envelope
from milobanana.utils.exceptions import InvalidEnvelopeError


def test_valid_envelope_passes_params_and_id_through():
    env = validate_envelope({"jsonrpc": "2.0", "method": "prompts.get", "params": [1, 2], "id": "abc"})
    assert env.method == "prompts.get"
    assert env.params == [1, 2]
    assert env.id == "abc"


def test_missing_id_and_params_default_to_none():
    env = validate_envelope({"jsonrpc": "2.0", "method": "health.check"})
    assert env.id is None
    assert env.params is None


@pytest.mark.parametrize("version", [None, "1.0", 2.0, "2"])
def test_wrong_or_missing_version_is_rejected(version):
    body = {"method": "health.check", "id": 1}
    if version is not None:
        body["jsonrpc"] = version
    with pytest.raises(InvalidEnvelopeError) as exc:
        validate_envelope(body)
    assert exc.value.data == "Invalid JSON-RPC version"


@pytest.mark.parametrize("method", [None, "", 42, ["a"]])
def test_bad_method_is_rejected(method):
    body = {"jsonrpc": "2.0", "id": 1}
    if method is not None:
        body["method"] = method
    with pytest.raises(InvalidEnvelopeError) as exc:
        validate_envelope(body)
    assert exc.value.data == "Invalid method"


def test_non_object_body_is_rejected():
    with pytest.raises(InvalidEnvelopeError):
        validate_envelope([{"jsonrpc": "2.0", "method": "x"}])


def test_response_shapes():
    assert success_response({"ok": True}, 3) == {"jsonrpc": "2.0", "result": {"ok": True}, "id": 3}
    err = {"code": -32601, "message": "Method 'x' not found"}
    assert error_response(err) == {"jsonrpc": "2.0", "error": err, "id": None}
