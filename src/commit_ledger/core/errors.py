"""Typed admission failures.

Every gate of the admission pipeline raises its own subclass of
``AdmissionError``. Each carries a stable ``kind`` string that the API layer
puts in error bodies, so clients can branch without parsing messages.
"""

from __future__ import annotations


class AdmissionError(Exception):
    """Base exception for rejected commit candidates."""

    kind = "admission_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MalformedCandidateError(AdmissionError):
    """A required field is missing, empty or of the wrong type."""

    kind = "malformed_candidate"


class InvalidPublicKeyError(AdmissionError):
    """The public key is not a valid hex-encoded Ed25519 key."""

    kind = "invalid_public_key"


class InvalidSignatureError(AdmissionError):
    """The signature does not verify against the canonical payload."""

    kind = "invalid_signature"


class DifficultyNotMetError(AdmissionError):
    """The nonce does not satisfy the configured proof-of-work difficulty.

    Attributes:
        current_difficulty: Difficulty enforced at the time of rejection, so
            the client can search for a satisfying nonce and resubmit.
    """

    kind = "difficulty_not_met"

    def __init__(self, current_difficulty: int) -> None:
        super().__init__(f"Difficulty not met, Current difficulty is {current_difficulty}")
        self.current_difficulty = current_difficulty
