"""Game store implementations."""

from .json_store import JsonFileGameStore
from .memory_store import InMemoryGameStore, StoreState
from .protocols import GameStore

__all__ = ["GameStore", "InMemoryGameStore", "JsonFileGameStore", "StoreState"]
