from ..domain.entities import User
from ..domain.ports.record_store import Collection, RecordStore
from ..errors import NotFoundError


async def list_users(store: RecordStore) -> list[User]:
    records = await store.fetch_all(Collection.USERS)
    return [User.from_record(record) for record in records]


async def get_user(store: RecordStore, user_id: str) -> User:
    records = await store.fetch_all(Collection.USERS, {"id": user_id})
    if not records:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return User.from_record(records[0])
