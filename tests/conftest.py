from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

from src.ipfs_pinning.db import create_engine_and_sessions
from src.ipfs_pinning.infrastructure.job_queue import PinningJobQueue


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    _, factory = create_engine_and_sessions(f"sqlite:///{tmp_path / 'queue.db'}")
    return factory


@pytest.fixture
def job_queue(session_factory: sessionmaker[Session]) -> PinningJobQueue:
    return PinningJobQueue(session_factory, lock_duration_seconds=60)


@pytest.fixture
def make_temp_file(tmp_path: Path):
    def _make(name: str, content: bytes = b"data") -> str:
        path = tmp_path / "uploads" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return str(path)

    return _make
