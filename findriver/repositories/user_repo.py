from findriver.db.store import RecordStore
from findriver.models.user import User, UserConfig


class UserRepository:
    """Read-only access to user records owned by the identity service."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.collection_name = "users"

    async def get_config(self, user_id: str) -> UserConfig:
        """Vehicle config of the user, empty when the user or config is missing."""
        doc = await self.store.get(self.collection_name, user_id)
        if doc:
            doc["config"] = doc.get("config") or {}
            return User(**doc).config
        return UserConfig()
