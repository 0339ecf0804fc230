"""Datastore contract and implementations."""

from lifequest.datastore.base import Datastore, Record, new_id
from lifequest.datastore.memory import MemoryDatastore

__all__ = ["Datastore", "MemoryDatastore", "Record", "new_id"]
