"""One-way password hashing with bcrypt."""

import asyncio

import bcrypt

# bcrypt only looks at the first 72 bytes of input
MAX_PASSWORD_BYTES = 72

DUMMY_PLACEHOLDER = b"placeholder-password"


class PasswordHasher:
    """
    Hashes and checks passwords with bcrypt.

    Each hash uses a fresh random salt, so hashing the same plaintext twice
    yields different digests while matches() stays deterministic. Plaintext
    is never stored or logged.
    """

    def __init__(self, rounds: int = 12):
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds
        self._dummy_digest = bcrypt.hashpw(b"dummy", bcrypt.gensalt(rounds)).decode("utf-8")

    @staticmethod
    def _encode(plaintext: str) -> bytes:
        if not plaintext:
            raise ValueError("Password must not be empty")
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return encoded

    def hash(self, plaintext: str) -> str:
        """Return a salted bcrypt digest of plaintext."""
        return bcrypt.hashpw(self._encode(plaintext), bcrypt.gensalt(self.rounds)).decode("utf-8")

    def matches(self, plaintext: str, digest: str) -> bool:
        """Check plaintext against a stored digest."""
        try:
            return bcrypt.checkpw(self._encode(plaintext), digest.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False

    def matches_dummy(self, plaintext: str) -> bool:
        """
        Spend one comparison against a fixed digest and return False.

        Used when no account exists so login timing does not reveal it.
        Plaintext the hasher would reject is swapped for a placeholder so the
        bcrypt work still happens.
        """
        try:
            candidate = self._encode(plaintext)
        except (ValueError, AttributeError):
            candidate = DUMMY_PLACEHOLDER
        bcrypt.checkpw(candidate, self._dummy_digest.encode("utf-8"))
        return False

    async def hash_async(self, plaintext: str) -> str:
        return await asyncio.to_thread(self.hash, plaintext)

    async def matches_async(self, plaintext: str, digest: str) -> bool:
        return await asyncio.to_thread(self.matches, plaintext, digest)

    async def matches_dummy_async(self, plaintext: str) -> bool:
        return await asyncio.to_thread(self.matches_dummy, plaintext)
