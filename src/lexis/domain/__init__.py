# Domain Package
from .errors import LexisError, PersistenceError
from .outcome import FailureKind, Outcome
from .ports import CardSource, KeyValueStore

__all__ = [
    "CardSource",
    "FailureKind",
    "KeyValueStore",
    "LexisError",
    "Outcome",
    "PersistenceError",
]
