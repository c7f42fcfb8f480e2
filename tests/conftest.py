import random
from datetime import datetime, timedelta, timezone

import pytest

from mnemo.application.engine import SrsEngine
from mnemo.domain.errors import StorageError
from mnemo.domain.ports import Clock, IdGenerator
from mnemo.infrastructure.persistence import JsonStateCodec, MemoryGateway

# Monday
START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FrozenClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, current: datetime = START):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class SequentialIds(IdGenerator):
    def __init__(self):
        self.counter = 0

    def new_id(self, prefix: str) -> str:
        self.counter += 1
        return f"{prefix}_{self.counter:04d}"


class FailingGateway(MemoryGateway):
    """MemoryGateway whose saves can be switched to fail."""

    def __init__(self, blob: bytes | None = None):
        super().__init__(blob)
        self.fail = False

    async def save(self, blob: bytes) -> None:
        if self.fail:
            raise StorageError("disk full")
        await super().save(blob)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def gateway():
    return FailingGateway()


@pytest.fixture
def engine(clock, gateway):
    return SrsEngine(
        gateway=gateway,
        clock=clock,
        codec=JsonStateCodec(),
        ids=SequentialIds(),
        rng=random.Random(7),
    )


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config files and env from the developer's machine
    monkeypatch.setenv("HOME", str(home))
    for var in ("MNEMO_DATA_FILE", "MNEMO_BACKEND", "MNEMO_DUE_SHARE", "MNEMO_TIMEZONE"):
        monkeypatch.delenv(var, raising=False)
    return home
