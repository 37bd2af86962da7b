"""Authentication gate guarding hand visibility."""

import hashlib
import logging
import secrets
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class AuthOutcome(Enum):
    """Result of one authentication attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"  # no method configured on this device/seat

    @property
    def grants_access(self) -> bool:
        """Whether the coordinator reveals the hand (fail-open on UNAVAILABLE)."""
        return self != AuthOutcome.FAILED


class Authenticator(Protocol):
    """Anything that can check, once per call, that the right person holds the device."""

    async def attempt_authentication(self) -> AuthOutcome: ...


class StaticAuthenticator:
    """Authenticator that always reports the same outcome."""

    def __init__(self, outcome: AuthOutcome = AuthOutcome.SUCCEEDED) -> None:
        self.outcome = outcome
        self.attempts = 0

    async def attempt_authentication(self) -> AuthOutcome:
        self.attempts += 1
        return self.outcome


PASSCODE_ALGORITHM = "pbkdf2_sha256"
PASSCODE_ITERATIONS = 260_000


def hash_passcode(
    passcode: str,
    salt: str | None = None,
    iterations: int = PASSCODE_ITERATIONS,
) -> str:
    """
    Hash a passcode for storage with PBKDF2-HMAC-SHA256.

    Returns:
        '<algorithm>$<iterations>$<salt>$<hex digest>'
    """
    salt = salt if salt is not None else secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", passcode.encode(), salt.encode(), iterations)
    return f"{PASSCODE_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_passcode(passcode: str, stored: str) -> bool:
    """Check a passcode against a value produced by hash_passcode."""
    try:
        algorithm, iterations, salt, _ = stored.split("$")
        rounds = int(iterations)
    except ValueError:
        logger.warning("Stored passcode hash is malformed")
        return False
    if algorithm != PASSCODE_ALGORITHM or rounds < 1:
        logger.warning("Unsupported passcode hash %r with %d rounds", algorithm, rounds)
        return False
    candidate = hash_passcode(passcode, salt=salt, iterations=rounds)
    return secrets.compare_digest(candidate, stored)


class PasscodeAuthenticator:
    """
    Compare a supplied passcode against a stored hash.

    A seat without a stored passcode has no method available.
    """

    def __init__(self, stored: str | None, provided: str | None) -> None:
        self._stored = stored
        self._provided = provided

    async def attempt_authentication(self) -> AuthOutcome:
        if not self._stored:
            return AuthOutcome.UNAVAILABLE
        if self._provided is None:
            return AuthOutcome.FAILED

        if verify_passcode(self._provided, self._stored):
            return AuthOutcome.SUCCEEDED
        return AuthOutcome.FAILED


class ChainedAuthenticator:
    """
    Try methods in order, falling back while a method is unavailable.

    Mirrors biometrics-then-passcode: the first method that can actually
    run decides; if none can, the result is UNAVAILABLE.
    """

    def __init__(self, *methods: Authenticator) -> None:
        self._methods = methods

    async def attempt_authentication(self) -> AuthOutcome:
        for method in self._methods:
            outcome = await method.attempt_authentication()
            if outcome != AuthOutcome.UNAVAILABLE:
                return outcome
            logger.debug("%s unavailable, trying next method", type(method).__name__)
        return AuthOutcome.UNAVAILABLE
