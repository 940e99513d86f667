# Infrastructure Adapters Package
from .json_store import JsonFileStore
from .memory_store import MemoryStore
from .static_source import StaticCardSource
from .yaml_deck_source import YamlDeckSource

__all__ = ["JsonFileStore", "MemoryStore", "StaticCardSource", "YamlDeckSource"]
