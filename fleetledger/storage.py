"""Mini README: Keyed document repositories used by the finance core.

Structure:
    * InMemoryRepository - generic create/read/update/delete/query store for
      dataclass records keyed by one of their attributes.

The core never decides how records are persisted; it only needs a keyed
document store. This in-memory implementation backs the account,
transaction and payable repositories in tests and in the demo service and
can be swapped for a database-backed class exposing the same methods.
Identifiers are generated deterministically (``txn_0001``) so logs and
fixtures stay readable.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

from .errors import NotFoundError, ValidationError
from .logging_utils import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


class InMemoryRepository(Generic[T]):
    """Dictionary-backed repository keyed by ``id_attribute``."""

    kind = "document"

    def __init__(
        self,
        id_attribute: str,
        *,
        prefix: str = "doc",
        items: Optional[Iterable[T]] = None,
    ) -> None:
        self._id_attribute = id_attribute
        self._prefix = prefix
        self._items: Dict[str, T] = {}
        self._sequence = 0
        self._lock = threading.Lock()
        for item in items or ():
            self.create(item)

    def _key(self, item: T) -> str:
        return str(getattr(item, self._id_attribute))

    def next_id(self) -> str:
        """Generate a deterministic identifier such as ``txn_0004``."""

        with self._lock:
            self._sequence += 1
            return f"{self._prefix}_{self._sequence:04d}"

    def _track_sequence(self, key: str) -> None:
        suffix = key.rsplit("_", 1)[-1]
        if key.startswith(f"{self._prefix}_") and suffix.isdigit():
            self._sequence = max(self._sequence, int(suffix))

    def exists(self, identifier: str) -> bool:
        return identifier in self._items

    def get(self, identifier: str) -> T:
        """Return the record or raise :class:`NotFoundError`."""

        try:
            return self._items[identifier]
        except KeyError:
            raise NotFoundError(self.kind, identifier) from None

    def create(self, item: T) -> T:
        key = self._key(item)
        with self._lock:
            if key in self._items:
                raise ValidationError(f"{self.kind} {key} already exists")
            self._items[key] = item
            self._track_sequence(key)
        LOGGER.debug("Created %s %s", self.kind, key)
        return item

    def update(self, identifier: str, item: T) -> T:
        with self._lock:
            if identifier not in self._items:
                raise NotFoundError(self.kind, identifier)
            self._items[identifier] = item
        LOGGER.debug("Updated %s %s", self.kind, identifier)
        return item

    def delete(self, identifier: str) -> T:
        with self._lock:
            try:
                removed = self._items.pop(identifier)
            except KeyError:
                raise NotFoundError(self.kind, identifier) from None
        LOGGER.debug("Deleted %s %s", self.kind, identifier)
        return removed

    def query(self, **fields: Any) -> List[T]:
        """Return records whose attributes equal every supplied value."""

        return [
            item
            for item in self._items.values()
            if all(getattr(item, name, None) == value for name, value in fields.items())
        ]

    def all(self) -> List[T]:
        return list(self._items.values())
