"""Cryptographic primitives for commit admission.

Contract
--------
- Keys are Ed25519. ``publicKey`` is the lowercase hex encoding of the
  32 raw public-key bytes; ``signature`` is the lowercase hex encoding of the
  64 raw signature bytes.
- The canonical payload is the UTF-8 JSON encoding of
  ``{"data", "nonce", "publicKey", "type"}`` (plus ``"commitAt"`` when the
  deployment signs it) with sorted keys and no whitespace.
- The signature covers the canonical payload bytes.
- The work hash is the hex SHA-256 of the same canonical payload; the nonce is
  part of that payload, so each nonce yields a different hash.
- A work hash meets difficulty ``d`` when it starts with ``d`` ``"0"``
  characters. Raising ``d`` can only turn a pass into a failure.
- An address is ``"0x"`` followed by the hex of the last 20 bytes of
  ``SHA-256(raw public key)``.

The client-side helpers at the bottom (key generation, nonce search,
signing) are what a submitter runs; the server only ever calls the
verification half.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from commit_ledger.core.errors import InvalidPublicKeyError
from commit_ledger.core.types import POST_TYPE, CommitCandidate

PUBLIC_KEY_BYTES = 32
SIGNATURE_BYTES = 64
ADDRESS_BYTES = 20


# ── Verification side ─────────────────────────────────────────────────────────


def decode_public_key(public_key: str) -> Ed25519PublicKey:
    """Parse a hex-encoded Ed25519 public key.

    Raises:
        InvalidPublicKeyError: If the value is not hex or not 32 bytes long.
    """
    try:
        raw = bytes.fromhex(public_key)
    except (TypeError, ValueError) as exc:
        raise InvalidPublicKeyError("Public key is not valid hex") from exc
    if len(raw) != PUBLIC_KEY_BYTES:
        raise InvalidPublicKeyError(
            f"Public key must be {PUBLIC_KEY_BYTES} bytes, got {len(raw)}"
        )
    try:
        return Ed25519PublicKey.from_public_bytes(raw)
    except ValueError as exc:
        raise InvalidPublicKeyError("Public key is not a valid Ed25519 key") from exc


def derive_address(public_key: str) -> str:
    """Derive the public address for a hex-encoded public key."""
    key = decode_public_key(public_key)
    raw = key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
    return "0x" + hashlib.sha256(raw).digest()[-ADDRESS_BYTES:].hex()


def canonical_payload(
    data: Any,
    type: str,
    nonce: int,
    public_key: str,
    commit_at: str | None = None,
) -> bytes:
    """Serialize the signed fields of a commit.

    Raises:
        TypeError, ValueError: If ``data`` is not JSON-serialisable.
    """
    fields: dict[str, Any] = {
        "data": data,
        "nonce": nonce,
        "publicKey": public_key,
        "type": type,
    }
    if commit_at is not None:
        fields["commitAt"] = commit_at
    return json.dumps(
        fields,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def verify_signature(payload: bytes, signature: str, public_key: str) -> bool:
    """Return True when ``signature`` is valid for ``payload`` under ``public_key``."""
    key = decode_public_key(public_key)
    try:
        raw_signature = bytes.fromhex(signature)
    except (TypeError, ValueError):
        return False
    if len(raw_signature) != SIGNATURE_BYTES:
        return False
    try:
        key.verify(raw_signature, payload)
    except InvalidSignature:
        return False
    return True


def work_hash(payload: bytes) -> str:
    """Hex SHA-256 of a canonical payload."""
    return hashlib.sha256(payload).hexdigest()


def meets_difficulty(hash_hex: str, difficulty: int) -> bool:
    """Proof-of-work predicate: ``difficulty`` leading zero hex characters."""
    if difficulty <= 0:
        return True
    return hash_hex.startswith("0" * difficulty)


# ── Client side ───────────────────────────────────────────────────────────────


def generate_keypair() -> tuple[Ed25519PrivateKey, str]:
    """Create a new signing key and return it with its hex public key."""
    private_key = Ed25519PrivateKey.generate()
    return private_key, public_key_hex(private_key)


def public_key_hex(private_key: Ed25519PrivateKey) -> str:
    """Hex encoding of the raw public key for ``private_key``."""
    raw = private_key.public_key().public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )
    return raw.hex()


def private_key_hex(private_key: Ed25519PrivateKey) -> str:
    """Hex encoding of the raw 32-byte private key seed."""
    raw = private_key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )
    return raw.hex()


def load_private_key(private_key: str) -> Ed25519PrivateKey:
    """Parse a hex-encoded raw Ed25519 private key."""
    try:
        return Ed25519PrivateKey.from_private_bytes(bytes.fromhex(private_key))
    except ValueError as exc:
        raise ValueError("Private key must be 32 bytes of hex") from exc


def sign_payload(private_key: Ed25519PrivateKey, payload: bytes) -> str:
    """Sign a canonical payload and return the hex signature."""
    return private_key.sign(payload).hex()


def find_nonce(
    data: Any,
    type: str,
    public_key: str,
    difficulty: int,
    *,
    commit_at: str | None = None,
    start: int = 0,
    max_attempts: int | None = None,
) -> int:
    """Search nonces upward from ``start`` until the work hash meets ``difficulty``.

    Raises:
        RuntimeError: If ``max_attempts`` nonces were tried without success.
    """
    nonce = start
    attempts = 0
    while True:
        if max_attempts is not None and attempts >= max_attempts:
            raise RuntimeError(f"No nonce found within {max_attempts} attempts")
        payload = canonical_payload(data, type, nonce, public_key, commit_at)
        if meets_difficulty(work_hash(payload), difficulty):
            return nonce
        nonce += 1
        attempts += 1


def create_commit(
    private_key: Ed25519PrivateKey,
    data: Any,
    type: str,
    difficulty: int,
    *,
    commit_at: str | None = None,
) -> CommitCandidate:
    """Build a signed candidate whose nonce satisfies ``difficulty``."""
    public_key = public_key_hex(private_key)
    nonce = find_nonce(data, type, public_key, difficulty, commit_at=commit_at)
    payload = canonical_payload(data, type, nonce, public_key, commit_at)
    return CommitCandidate(
        data=data,
        type=type,
        nonce=nonce,
        public_key=public_key,
        signature=sign_payload(private_key, payload),
        commit_at=commit_at,
    )


def post_template(
    text: str,
    *,
    reply_to: str | None = None,
    mentions: list[str] | None = None,
    tags: list[str] | None = None,
    media: list[str] | None = None,
) -> dict[str, Any]:
    """Payload for a ``post`` commit; ``reply_to`` sets the parent signature."""
    return {
        "text": text,
        "mentions": list(mentions or []),
        "tags": list(tags or []),
        "media": list(media or []),
        "signature": reply_to,
    }


__all__ = [
    "POST_TYPE",
    "canonical_payload",
    "create_commit",
    "decode_public_key",
    "derive_address",
    "find_nonce",
    "generate_keypair",
    "load_private_key",
    "meets_difficulty",
    "post_template",
    "private_key_hex",
    "public_key_hex",
    "sign_payload",
    "verify_signature",
    "work_hash",
]
