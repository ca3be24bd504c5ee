# Infrastructure Store Adapters Package
from .json_file import JsonFileStore
from .memory import MemoryStore

__all__ = ["MemoryStore", "JsonFileStore"]
