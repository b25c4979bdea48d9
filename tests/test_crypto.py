"""
Unit tests for commit_ledger.crypto.

Tests cover:
- Address derivation and public key decoding
- Canonical payload encoding
- Signature verification (valid, tampered, malformed)
- Difficulty predicate and nonce search
- Client helpers (key round-trip, create_commit, post_template)
"""

import hashlib
import json

import pytest

from commit_ledger import crypto
from commit_ledger.core.errors import InvalidPublicKeyError

# ============================================================================
# ADDRESS DERIVATION
# ============================================================================


@pytest.mark.unit
def test_derive_address_is_last_20_bytes_of_sha256(private_key):
    public_key = crypto.public_key_hex(private_key)
    expected = "0x" + hashlib.sha256(bytes.fromhex(public_key)).digest()[-20:].hex()

    assert crypto.derive_address(public_key) == expected


@pytest.mark.unit
def test_derive_address_is_deterministic_and_key_specific(private_key, other_private_key):
    a = crypto.public_key_hex(private_key)
    b = crypto.public_key_hex(other_private_key)

    assert crypto.derive_address(a) == crypto.derive_address(a)
    assert crypto.derive_address(a) != crypto.derive_address(b)
    assert len(crypto.derive_address(a)) == 42


@pytest.mark.unit
@pytest.mark.parametrize(
    "public_key",
    ["", "zz" * 32, "ab" * 31, "ab" * 33, "abc"],
)
def test_decode_public_key_rejects_bad_values(public_key):
    with pytest.raises(InvalidPublicKeyError):
        crypto.decode_public_key(public_key)


# ============================================================================
# CANONICAL PAYLOAD
# ============================================================================


@pytest.mark.unit
def test_canonical_payload_is_sorted_compact_json():
    payload = crypto.canonical_payload({"b": 1, "a": [1, 2]}, "post", 7, "ab")

    assert payload == b'{"data":{"a":[1,2],"b":1},"nonce":7,"publicKey":"ab","type":"post"}'


@pytest.mark.unit
def test_canonical_payload_ignores_data_key_order():
    first = crypto.canonical_payload({"x": 1, "y": 2}, "note", 0, "ab")
    second = crypto.canonical_payload({"y": 2, "x": 1}, "note", 0, "ab")

    assert first == second


@pytest.mark.unit
def test_canonical_payload_includes_commit_at_only_when_given():
    without = json.loads(crypto.canonical_payload(None, "post", 0, "ab"))
    with_at = json.loads(crypto.canonical_payload(None, "post", 0, "ab", "2024-01-01T00:00:00Z"))

    assert "commitAt" not in without
    assert with_at["commitAt"] == "2024-01-01T00:00:00Z"


@pytest.mark.unit
def test_canonical_payload_rejects_non_json_data():
    with pytest.raises(TypeError):
        crypto.canonical_payload({"value": object()}, "post", 0, "ab")
    with pytest.raises(ValueError):
        crypto.canonical_payload({"value": float("nan")}, "post", 0, "ab")


# ============================================================================
# SIGNATURES
# ============================================================================


@pytest.mark.unit
def test_verify_signature_accepts_valid_signature(private_key):
    public_key = crypto.public_key_hex(private_key)
    payload = crypto.canonical_payload({"text": "hi"}, "post", 3, public_key)
    signature = crypto.sign_payload(private_key, payload)

    assert crypto.verify_signature(payload, signature, public_key) is True


@pytest.mark.unit
def test_verify_signature_rejects_other_payload(private_key):
    public_key = crypto.public_key_hex(private_key)
    payload = crypto.canonical_payload({"text": "hi"}, "post", 3, public_key)
    signature = crypto.sign_payload(private_key, payload)
    tampered = crypto.canonical_payload({"text": "hi"}, "post", 4, public_key)

    assert crypto.verify_signature(tampered, signature, public_key) is False


@pytest.mark.unit
def test_verify_signature_rejects_other_key(private_key, other_private_key):
    payload = b"payload"
    signature = crypto.sign_payload(private_key, payload)

    assert (
        crypto.verify_signature(payload, signature, crypto.public_key_hex(other_private_key))
        is False
    )


@pytest.mark.unit
@pytest.mark.parametrize("signature", ["", "not-hex", "ab" * 63, "ab" * 65])
def test_verify_signature_rejects_malformed_signature(private_key, signature):
    public_key = crypto.public_key_hex(private_key)

    assert crypto.verify_signature(b"payload", signature, public_key) is False


# ============================================================================
# PROOF OF WORK
# ============================================================================


@pytest.mark.unit
def test_work_hash_is_sha256_hex():
    assert crypto.work_hash(b"abc") == hashlib.sha256(b"abc").hexdigest()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("hash_hex", "difficulty", "expected"),
    [
        ("ffff", 0, True),
        ("0fff", 1, True),
        ("0fff", 2, False),
        ("000f", 3, True),
        ("000f", 4, False),
    ],
)
def test_meets_difficulty(hash_hex, difficulty, expected):
    assert crypto.meets_difficulty(hash_hex, difficulty) is expected


@pytest.mark.unit
def test_meets_difficulty_is_monotonic():
    hash_hex = "00a" + "f" * 61
    results = [crypto.meets_difficulty(hash_hex, d) for d in range(6)]

    assert results == [True, True, True, False, False, False]


@pytest.mark.unit
def test_find_nonce_returns_first_passing_nonce(private_key):
    public_key = crypto.public_key_hex(private_key)
    nonce = crypto.find_nonce({"n": 1}, "post", public_key, 2)

    for earlier in range(nonce):
        payload = crypto.canonical_payload({"n": 1}, "post", earlier, public_key)
        assert not crypto.meets_difficulty(crypto.work_hash(payload), 2)
    payload = crypto.canonical_payload({"n": 1}, "post", nonce, public_key)
    assert crypto.meets_difficulty(crypto.work_hash(payload), 2)


@pytest.mark.unit
def test_find_nonce_searches_upward_from_start(private_key):
    public_key = crypto.public_key_hex(private_key)

    nonce = crypto.find_nonce({"n": 1}, "post", public_key, 1, start=1000)

    assert nonce >= 1000
    payload = crypto.canonical_payload({"n": 1}, "post", nonce, public_key)
    assert crypto.meets_difficulty(crypto.work_hash(payload), 1)


@pytest.mark.unit
def test_find_nonce_gives_up_after_max_attempts(private_key):
    public_key = crypto.public_key_hex(private_key)

    with pytest.raises(RuntimeError):
        crypto.find_nonce(None, "post", public_key, 64, max_attempts=5)


# ============================================================================
# CLIENT HELPERS
# ============================================================================


@pytest.mark.unit
def test_private_key_hex_round_trip(private_key):
    restored = crypto.load_private_key(crypto.private_key_hex(private_key))

    assert crypto.public_key_hex(restored) == crypto.public_key_hex(private_key)


@pytest.mark.unit
def test_load_private_key_rejects_bad_hex():
    with pytest.raises(ValueError):
        crypto.load_private_key("nothex")


@pytest.mark.unit
def test_create_commit_produces_verifiable_candidate(private_key):
    candidate = crypto.create_commit(private_key, {"text": "hello"}, "post", 2)
    payload = crypto.canonical_payload(
        candidate.data, candidate.type, candidate.nonce, candidate.public_key
    )

    assert candidate.public_key == crypto.public_key_hex(private_key)
    assert crypto.verify_signature(payload, candidate.signature, candidate.public_key)
    assert crypto.meets_difficulty(crypto.work_hash(payload), 2)


@pytest.mark.unit
def test_post_template_shape():
    data = crypto.post_template("hello", reply_to="abc", mentions=["0x1"], tags=["t"])

    assert data == {
        "text": "hello",
        "mentions": ["0x1"],
        "tags": ["t"],
        "media": [],
        "signature": "abc",
    }
    assert crypto.post_template("top")["signature"] is None
