"""mnemo: spaced-repetition scheduling engine."""

from .consts import VERSION

__version__ = VERSION
