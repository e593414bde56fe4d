import json
import uuid
from typing import List, Optional

from .models import Address


class AddressModule:
    def __init__(self, redis_client):
        """
        Initialize address module.

        Args:
            redis_client: Async Redis client

        Addresses for one identity live in the hash user:{id}:addresses,
        keyed by address id.
        """
        self.redis = redis_client

    @staticmethod
    def _key(user_id: str) -> str:
        return f"user:{user_id}:addresses"

    async def add_address(self, user_id: str, **fields) -> Address:
        """
        Add an address for a user.

        The first address becomes the default; adding another one with
        is_default=True moves the default flag to it.
        """
        existing = await self.list_addresses(user_id)
        address = Address(id=str(uuid.uuid4()), user_id=user_id, **fields)
        if not existing:
            address.is_default = True
        elif address.is_default:
            await self._clear_default(user_id, existing)

        await self.redis.hset(self._key(user_id), address.id, json.dumps(address.to_dict()))
        return address

    async def get_address(self, user_id: str, address_id: str) -> Optional[Address]:
        data = await self.redis.hget(self._key(user_id), address_id)
        if data:
            return Address.from_dict(json.loads(data))
        return None

    async def list_addresses(self, user_id: str) -> List[Address]:
        """List a user's addresses, default first."""
        raw = await self.redis.hgetall(self._key(user_id))
        addresses = [Address.from_dict(json.loads(value)) for value in raw.values()]
        addresses.sort(key=lambda a: (not a.is_default, a.id))
        return addresses

    async def update_address(self, user_id: str, address_id: str, **fields) -> Optional[Address]:
        """
        Update fields of an existing address.

        Returns:
            Updated address, or None if it does not belong to the user
        """
        address = await self.get_address(user_id, address_id)
        if address is None:
            return None

        for name, value in fields.items():
            if value is not None and hasattr(address, name) and name not in ("id", "user_id"):
                setattr(address, name, value)

        if fields.get("is_default"):
            others = [a for a in await self.list_addresses(user_id) if a.id != address_id]
            await self._clear_default(user_id, others)

        await self.redis.hset(self._key(user_id), address.id, json.dumps(address.to_dict()))
        return address

    async def delete_address(self, user_id: str, address_id: str) -> bool:
        removed = await self.redis.hdel(self._key(user_id), address_id)
        return bool(removed)

    async def delete_all(self, user_id: str) -> None:
        await self.redis.delete(self._key(user_id))

    async def _clear_default(self, user_id: str, addresses: List[Address]) -> None:
        for other in addresses:
            if other.is_default:
                other.is_default = False
                await self.redis.hset(self._key(user_id), other.id, json.dumps(other.to_dict()))
