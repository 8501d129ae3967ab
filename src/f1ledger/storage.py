"""Document-store gateway over the pipeline's entity collections."""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from pymongo import MongoClient, ReplaceOne
from pymongo.collection import Collection as MongoCollectionType
from pymongo.database import Database

from f1ledger.models.domain import (
    Constructor,
    ConstructorStanding,
    Driver,
    DriverStanding,
    Entity,
    FailedRequest,
    Race,
)

logger = logging.getLogger(__name__)

COLLECTION_MODELS: dict[str, type[Entity]] = {
    "drivers": Driver,
    "constructors": Constructor,
    "races": Race,
    "driver_standings": DriverStanding,
    "constructor_standings": ConstructorStanding,
    "failed_requests": FailedRequest,
}


class Collection[T: Entity](ABC):
    """Key-based access to one entity collection.

    Single-entity writes are atomic; nothing spans several entities.
    """

    def __init__(self, model: type[T]) -> None:
        self.model = model

    @abstractmethod
    def get(self, entity_id: str) -> T | None: ...

    @abstractmethod
    def all(self) -> list[T]: ...

    @abstractmethod
    def find_by(self, **fields: Any) -> list[T]: ...

    @abstractmethod
    def save(self, entity: T) -> T: ...

    @abstractmethod
    def delete(self, entity_id: str) -> None: ...

    @abstractmethod
    def delete_all(self) -> None: ...

    def save_all(self, entities: Iterable[T]) -> list[T]:
        return [self.save(e) for e in entities]

    def count(self) -> int:
        return len(self.all())


class InMemoryCollection[T: Entity](Collection[T]):
    """Dict-backed collection that stores detached copies of each document."""

    def __init__(self, model: type[T]) -> None:
        super().__init__(model)
        self._docs: dict[str, dict[str, Any]] = {}

    def _load(self, doc: dict[str, Any]) -> T:
        return self.model.model_validate(copy.deepcopy(doc))

    def get(self, entity_id: str) -> T | None:
        doc = self._docs.get(entity_id)
        return self._load(doc) if doc is not None else None

    def all(self) -> list[T]:
        return [self._load(doc) for doc in self._docs.values()]

    def find_by(self, **fields: Any) -> list[T]:
        return [
            self._load(doc)
            for doc in self._docs.values()
            if all(doc.get(k) == v for k, v in fields.items())
        ]

    def save(self, entity: T) -> T:
        self._docs[entity.entity_id] = entity.model_dump()
        return entity

    def delete(self, entity_id: str) -> None:
        self._docs.pop(entity_id, None)

    def delete_all(self) -> None:
        self._docs.clear()

    def count(self) -> int:
        return len(self._docs)


class MongoCollection[T: Entity](Collection[T]):
    """MongoDB-backed collection keyed by ``_id`` = entity id."""

    def __init__(self, collection: MongoCollectionType, model: type[T]) -> None:
        super().__init__(model)
        self._collection = collection

    def _load(self, doc: dict[str, Any]) -> T:
        doc = dict(doc)
        doc.pop("_id", None)
        return self.model.model_validate(doc)

    @staticmethod
    def _dump(entity: Entity) -> dict[str, Any]:
        doc = entity.model_dump()
        doc["_id"] = entity.entity_id
        return doc

    def get(self, entity_id: str) -> T | None:
        doc = self._collection.find_one({"_id": entity_id})
        return self._load(doc) if doc is not None else None

    def all(self) -> list[T]:
        return [self._load(doc) for doc in self._collection.find({})]

    def find_by(self, **fields: Any) -> list[T]:
        return [self._load(doc) for doc in self._collection.find(fields)]

    def save(self, entity: T) -> T:
        self._collection.replace_one({"_id": entity.entity_id}, self._dump(entity), upsert=True)
        return entity

    def save_all(self, entities: Iterable[T]) -> list[T]:
        entities = list(entities)
        ops = [ReplaceOne({"_id": e.entity_id}, self._dump(e), upsert=True) for e in entities]
        # Batch in groups of 1000
        for i in range(0, len(ops), 1000):
            self._collection.bulk_write(ops[i : i + 1000], ordered=False)
        return entities

    def delete(self, entity_id: str) -> None:
        self._collection.delete_one({"_id": entity_id})

    def delete_all(self) -> None:
        self._collection.delete_many({})

    def count(self) -> int:
        return self._collection.count_documents({})


class StorageGateway:
    """The collections the pipeline reads and writes."""

    def __init__(
        self,
        drivers: Collection[Driver],
        constructors: Collection[Constructor],
        races: Collection[Race],
        driver_standings: Collection[DriverStanding],
        constructor_standings: Collection[ConstructorStanding],
        failed_requests: Collection[FailedRequest],
    ) -> None:
        self.drivers = drivers
        self.constructors = constructors
        self.races = races
        self.driver_standings = driver_standings
        self.constructor_standings = constructor_standings
        self.failed_requests = failed_requests


class InMemoryStorage(StorageGateway):
    def __init__(self) -> None:
        super().__init__(
            **{name: InMemoryCollection(model) for name, model in COLLECTION_MODELS.items()}
        )


class MongoStorage(StorageGateway):
    """Storage backed by one MongoDB database, one collection per entity type."""

    def __init__(self, db: Database) -> None:
        self.db = db
        super().__init__(
            **{name: MongoCollection(db[name], model) for name, model in COLLECTION_MODELS.items()}
        )

    @classmethod
    def from_uri(cls, uri: str, database: str) -> MongoStorage:
        logger.info("Connecting to MongoDB database %s", database)
        return cls(MongoClient(uri)[database])
