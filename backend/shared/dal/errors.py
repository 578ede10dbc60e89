"""Storage-level errors raised by repository implementations.

Concrete stores translate backend failures (sqlite3.IntegrityError, missing
rows) into these so callers never depend on a specific backend.
"""


class StorageError(Exception):
    """Base class for data access failures."""


class RecordNotFoundError(StorageError, LookupError):
    """A mutation referenced a game, player or card that does not exist."""


class CapacityExceededError(StorageError):
    """A game already holds max_players players."""


class DuplicateNameError(StorageError):
    """A player name is already taken within the game."""


class DuplicateRoomCodeError(StorageError):
    """A game with the same room code already exists."""


class CorruptRecordError(StorageError):
    """A stored record could not be decoded into its typed model."""
