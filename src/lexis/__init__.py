"""lexis: spaced-repetition vocabulary trainer."""

from lexis.consts import VERSION

__version__ = VERSION
