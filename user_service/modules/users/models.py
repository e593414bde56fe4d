"""Identity and address records owned by the credential store."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class IdentityStatus(str, Enum):
    """Account status."""

    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass
class Identity:
    """User account with hashed credential."""

    id: str
    email: str
    password_hash: str = field(repr=False)
    status: IdentityStatus = IdentityStatus.ACTIVE
    credential_version: int = 1
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == IdentityStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage."""
        data = asdict(self)
        data["status"] = self.status.value
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        return cls(
            id=data["id"],
            email=data["email"],
            password_hash=data["password_hash"],
            status=IdentityStatus(data.get("status", IdentityStatus.ACTIVE.value)),
            credential_version=int(data.get("credential_version", 1)),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            phone=data.get("phone", ""),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None,
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None,
        )

    def public_profile(self) -> Dict[str, Any]:
        """Profile fields safe to return to the account owner."""
        data = self.to_dict()
        data.pop("password_hash")
        data.pop("credential_version")
        return data


@dataclass
class Address:
    """Postal address belonging to one identity."""

    id: str
    user_id: str
    street: str
    city: str
    state: str = ""
    postal_code: str = ""
    country: str = ""
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Address":
        return cls(**data)
