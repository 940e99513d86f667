class LexisError(Exception):
    """Base class for lexis errors."""


class PersistenceError(LexisError):
    """Raised by storage adapters when a read or write fails."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")
