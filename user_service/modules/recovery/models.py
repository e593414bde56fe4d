"""Reset token records and results of the recovery flow."""

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


def token_digest(token: str) -> str:
    """Storage key for a reset token; the plaintext value is never persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ResetTokenRecord:
    """Persisted state of one issued reset token."""

    token_digest: str
    identity_ref: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        # consumed lives in its own key so it can be flipped atomically
        return {
            "token_digest": self.token_digest,
            "identity_ref": self.identity_ref,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], consumed: bool = False) -> "ResetTokenRecord":
        return cls(
            token_digest=data["token_digest"],
            identity_ref=data["identity_ref"],
            issued_at=datetime.fromisoformat(data["issued_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            consumed=consumed,
        )


@dataclass(frozen=True)
class ResetIssue:
    """A freshly issued reset token, held only by the caller."""

    token: str
    identity_ref: str
    email: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"ResetIssue(identity_ref={self.identity_ref!r}, expires_at={self.expires_at.isoformat()})"


@dataclass(frozen=True)
class Redemption:
    """Outcome of a successful redemption, ready for credential rotation."""

    identity_ref: str
    digest: str
    token_digest: Optional[str] = None

    def __repr__(self) -> str:
        return f"Redemption(identity_ref={self.identity_ref!r})"
