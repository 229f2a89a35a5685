"""
CRUD operations on a UserStore.

Payloads are expected to be sanitized by ``validation.validate`` already, keyed
by their wire (camelCase) names. Lookups that miss return ``Err(NotFound())``.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from .errors import Err, NotFound, Ok, Result
from .models import User, UserStore

Clock = Callable[[], datetime]

# Fields the caller can never overwrite through an update
IMMUTABLE_FIELDS = ("id", "createdAt", "created_at", "updatedAt", "updated_at")

# Optional on create; stored blank so every record carries all fields
CONTACT_DEFAULTS = {"email": "", "phone": ""}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    """Render like JavaScript's Date.toISOString(): UTC, milliseconds, Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _new_id(store: UserStore) -> str:
    taken = set(store.ids())
    while True:
        user_id = str(uuid.uuid4())
        if user_id not in taken:
            return user_id


def create_user(store: UserStore, payload: Dict[str, Any], clock: Clock = utcnow) -> User:
    def create(store: UserStore) -> User:
        now = isoformat(clock())
        fields = {k: v for k, v in payload.items() if k not in IMMUTABLE_FIELDS}
        user = User.model_validate(
            {**CONTACT_DEFAULTS, **fields, "id": _new_id(store), "createdAt": now, "updatedAt": now}
        )
        store.append(user)
        return user

    user = store.transaction(create)
    logger.info(f"User created with ID {user.id}")
    return user


def list_users(store: UserStore) -> List[User]:
    return store.snapshot()


def get_user_by_id(store: UserStore, user_id: Optional[str]) -> Result[User, NotFound]:
    def read(store: UserStore) -> Result[User, NotFound]:
        index = store.index_of(user_id)
        if index == -1:
            return Err(NotFound())
        return Ok(store.get(index))

    return store.transaction(read)


def update_user(
    store: UserStore,
    user_id: Optional[str],
    partial: Optional[Dict[str, Any]],
    clock: Clock = utcnow,
) -> Result[User, NotFound]:
    """Shallow-merge ``partial`` over the stored user and refresh ``updatedAt``.

    Fields missing from ``partial`` keep their stored value; ``id`` and
    ``createdAt`` are never taken from it. ``updatedAt`` is refreshed even when
    nothing else changes. The record keeps its position in the store.
    """

    def update(store: UserStore) -> Result[User, NotFound]:
        index = store.index_of(user_id)
        if index == -1:
            return Err(NotFound())
        current = store.get(index)
        changes = {k: v for k, v in (partial or {}).items() if k not in IMMUTABLE_FIELDS}
        updated = User.model_validate(
            {**current.model_dump(by_alias=True), **changes, "updatedAt": isoformat(clock())}
        )
        store.replace(index, updated)
        return Ok(updated)

    result = store.transaction(update)
    if isinstance(result, Ok):
        logger.info(f"User {user_id} updated")
    return result


def delete_user(store: UserStore, user_id: Optional[str]) -> Result[User, NotFound]:
    def delete(store: UserStore) -> Result[User, NotFound]:
        index = store.index_of(user_id)
        if index == -1:
            return Err(NotFound())
        return Ok(store.pop(index))

    result = store.transaction(delete)
    if isinstance(result, Ok):
        logger.info(f"User {user_id} deleted")
    return result
