"""Service for minting stable identifiers for cards and sessions."""

from ulid import ULID

from mnemo.domain.ports import IdGenerator


def generate_id(prefix: str) -> str:
    """Generate a sortable, collision-resistant id using ULID."""
    return f"{prefix}_{ULID()}"


class UlidGenerator(IdGenerator):
    """Default IdGenerator: `<prefix>_<ULID>` ids, lexicographically time-ordered."""

    def new_id(self, prefix: str) -> str:
        return generate_id(prefix)
