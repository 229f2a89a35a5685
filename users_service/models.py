import threading
from typing import Callable, Iterable, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from . import config

T = TypeVar("T")


class User(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    created_at: str
    updated_at: str


class UserStore:
    """Ordered in-memory collection of users, guarded by a single lock.

    Records are immutable, so handing them out never exposes stored state.
    Use ``transaction`` for any find-then-mutate sequence.
    """

    def __init__(self, users: Iterable[User] = ()):
        self._lock = threading.RLock()
        self._users: List[User] = list(users)

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def snapshot(self) -> List[User]:
        with self._lock:
            return list(self._users)

    def ids(self) -> List[str]:
        with self._lock:
            return [u.id for u in self._users]

    def index_of(self, user_id: Optional[str]) -> int:
        if not user_id:
            return -1
        with self._lock:
            return next((i for i, u in enumerate(self._users) if u.id == user_id), -1)

    def get(self, index: int) -> User:
        with self._lock:
            return self._users[index]

    def append(self, user: User) -> None:
        with self._lock:
            self._users.append(user)

    def replace(self, index: int, user: User) -> None:
        with self._lock:
            self._users[index] = user

    def pop(self, index: int) -> User:
        with self._lock:
            return self._users.pop(index)

    def reset(self, users: Iterable[User] = ()) -> None:
        with self._lock:
            self._users = list(users)

    def transaction(self, operation: Callable[["UserStore"], T]) -> T:
        with self._lock:
            return operation(self)


# Jeu de données de démonstration (chargé au démarrage si SEED_USERS)
SEED_USERS: List[User] = [
    User(
        id="4b1335f4-788b-4e8d-9ed5-04b99ce430a4",
        first_name="Emma",
        last_name="Johnson",
        email="emma.johnson@email.com",
        phone="+1-555-555-0123",
        created_at="2023-01-15T08:30:00Z",
        updated_at="2023-08-22T14:15:30Z",
    ),
    User(
        id="c27d2af0-b713-4092-a73b-024d1313233f",
        first_name="Liam",
        last_name="Williams",
        email="liam.williams@email.com",
        phone="+1-555-555-0456",
        created_at="2023-02-03T12:45:15Z",
        updated_at="2023-09-10T09:22:45Z",
    ),
    User(
        id="02ad7f8d-9a4d-4f00-b101-7744851880a2",
        first_name="Sophia",
        last_name="Brown",
        email="sophia.brown@email.com",
        phone="+1-555-555-0789",
        created_at="2023-03-22T16:20:30Z",
        updated_at="2023-07-18T11:33:20Z",
    ),
    User(
        id="a3fdef38-b254-4139-b93c-7e576baf9536",
        first_name="Noah",
        last_name="Davis",
        email="noah.davis@email.com",
        phone="+1-555-555-0321",
        created_at="2023-04-07T10:15:45Z",
        updated_at="2023-09-25T15:40:10Z",
    ),
    User(
        id="872afdbd-639e-495f-94f0-c008799f7914",
        first_name="Olivia",
        last_name="Miller",
        email="olivia.miller@email.com",
        phone="+1-555-555-0654",
        created_at="2023-05-12T13:25:20Z",
        updated_at="2023-08-30T16:55:35Z",
    ),
    User(
        id="3415a2d7-8f54-4e17-8966-55d1b0219ee4",
        first_name="Ethan",
        last_name="Wilson",
        email="ethan.wilson@email.com",
        phone="+1-555-555-0987",
        created_at="2023-01-28T09:40:10Z",
        updated_at="2023-06-14T12:28:50Z",
    ),
    User(
        id="a81f014a-efea-40d1-9a53-ff7f329b653c",
        first_name="Ava",
        last_name="Moore",
        email="ava.moore@email.com",
        phone="+1-555-555-0147",
        created_at="2023-06-05T14:55:25Z",
        updated_at="2023-09-12T10:18:40Z",
    ),
    User(
        id="3d4c5f82-909d-474c-95ee-0ab44fec640e",
        first_name="Mason",
        last_name="Taylor",
        email="mason.taylor@email.com",
        phone="+1-555-555-0258",
        created_at="2023-07-19T11:30:50Z",
        updated_at="2023-09-28T13:42:15Z",
    ),
    User(
        id="8b5fac60-b246-4601-81e7-a517ceea1c6d",
        first_name="Isabella",
        last_name="Anderson",
        email="isabella.anderson@email.com",
        phone="+1-555-555-0369",
        created_at="2023-08-01T07:15:35Z",
        updated_at="2023-09-05T08:50:25Z",
    ),
    User(
        id="798ada0b-a752-449c-9138-551a4850fb03",
        first_name="William",
        last_name="Thomas",
        email="william.thomas@email.com",
        phone="+1-555-555-0741",
        created_at="2023-09-14T15:20:10Z",
        updated_at="2023-09-20T17:35:55Z",
    ),
]

users_store = UserStore(SEED_USERS if config.SEED_USERS else ())
