from __future__ import annotations

import abc
import json
import logging
import os
import pathlib
import tempfile
from typing import Any, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db import make_session_factory, session_scope
from ..errors import ConcurrentUpdate, PersistenceError
from ..models import STATE_ROW_ID, Base, DrawStateRecord
from ..state import DrawState
from .notifier import ChangeNotifier


class StateStore(abc.ABC):
    """Durable home of the draw state.

    Backends only implement reading and atomically replacing one record;
    snapshot bookkeeping and change notification live here.
    """

    def __init__(
        self, notifier: Optional[ChangeNotifier] = None, logger: Optional[logging.Logger] = None
    ) -> None:
        self._notifier = notifier
        self._snapshot = DrawState()
        self._logger = logger or logging.getLogger("drawpool.store")

    @abc.abstractmethod
    def _read_record(self) -> Optional[Mapping[str, Any]]:
        """Return the persisted record, or ``None`` when nothing was persisted yet.

        Implementations raise `PersistenceError` when a record exists but
        cannot be read.
        """

    @abc.abstractmethod
    def _write_record(self, record: Mapping[str, Any], expected_version: int) -> None:
        """Replace the persisted record in one atomic step.

        Backends shared between processes raise `ConcurrentUpdate` when the
        stored version is no longer ``expected_version``.
        """

    def snapshot(self) -> DrawState:
        return self._snapshot

    def _decode(self, record: Mapping[str, Any]) -> DrawState:
        try:
            return DrawState.from_record(record)
        except (TypeError, ValueError, AttributeError) as exc:
            raise PersistenceError(f"persisted draw state is malformed: {exc}") from exc

    def _adopt(self, state: DrawState) -> DrawState:
        self._snapshot = state
        if self._notifier is not None:
            self._notifier.publish(state)
        return state

    def load(self) -> DrawState:
        record = self._read_record()
        if record is None:
            self._logger.info("No persisted draw state found; initialising an empty pool.")
            try:
                self.save(DrawState())
                return self._snapshot
            except ConcurrentUpdate:
                # Another process initialised the pool first.
                record = self._read_record()
                if record is None:
                    raise

        state = self._adopt(self._decode(record))
        self._logger.info(
            "Loaded draw state version %s with %s claimed numbers", state.version, len(state.used_numbers)
        )
        return state

    def refresh(self) -> DrawState:
        """Return the latest durable state.

        The base implementation trusts the in-memory snapshot; backends that
        can be shared between processes re-read the record.
        """
        return self._snapshot

    def save(self, state: DrawState) -> None:
        try:
            self._write_record(state.to_record(), expected_version=self._snapshot.version)
        except PersistenceError:
            raise
        except (OSError, SQLAlchemyError, TypeError, ValueError) as exc:
            self._logger.exception("Failed to persist draw state version %s", state.version)
            raise PersistenceError(f"failed to persist draw state: {exc}") from exc

        self._adopt(state)


class JsonFileStateStore(StateStore):
    """Keeps the aggregate in one JSON file replaced via temp file + rename.

    Single-process only: the file carries no cross-process lock.
    """

    def __init__(
        self,
        path: str,
        notifier: Optional[ChangeNotifier] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(notifier=notifier, logger=logger)
        self._path = pathlib.Path(path)

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def _read_record(self) -> Optional[Mapping[str, Any]]:
        if not self._path.exists():
            return None
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"cannot read draw state from {self._path}: {exc}") from exc

    def _write_record(self, record: Mapping[str, Any], expected_version: int) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(record, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


class SqlStateStore(StateStore):
    """Keeps the aggregate as a JSON payload in a single database row.

    Writes are a compare-and-swap on the row's ``version``, so several
    processes can share one database without granting a number twice.
    """

    def __init__(
        self,
        engine: Engine,
        notifier: Optional[ChangeNotifier] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(notifier=notifier, logger=logger)
        self._engine = engine
        Base.metadata.create_all(engine)
        self._sessions = make_session_factory(engine)

    def _read_record(self) -> Optional[Mapping[str, Any]]:
        try:
            with session_scope(self._sessions) as session:
                row = session.get(DrawStateRecord, STATE_ROW_ID, populate_existing=True)
                if row is None:
                    return None
                return row.get_payload()
        except (SQLAlchemyError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"cannot read draw state from database: {exc}") from exc

    def refresh(self) -> DrawState:
        record = self._read_record()
        if record is None:
            return self._snapshot
        state = self._decode(record)
        if state.version != self._snapshot.version:
            self._logger.info(
                "Picked up draw state version %s written elsewhere (had %s)",
                state.version,
                self._snapshot.version,
            )
            self._adopt(state)
        return self._snapshot

    def _write_record(self, record: Mapping[str, Any], expected_version: int) -> None:
        version = int(record.get("version", 0))
        try:
            with session_scope(self._sessions) as session:
                exists = session.query(DrawStateRecord.id).filter(DrawStateRecord.id == STATE_ROW_ID).first()
                if exists is None:
                    row = DrawStateRecord(id=STATE_ROW_ID, version=version)
                    row.set_payload(dict(record))
                    session.add(row)
                    session.flush()
                    return

                result = session.execute(
                    update(DrawStateRecord)
                    .where(DrawStateRecord.id == STATE_ROW_ID)
                    .where(DrawStateRecord.version == expected_version)
                    .values(payload=json.dumps(dict(record)), version=version)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise ConcurrentUpdate(
                        f"draw state moved past version {expected_version} before version {version} was written"
                    )
        except IntegrityError as exc:
            raise ConcurrentUpdate(f"draw state row was created concurrently: {exc}") from exc

    def dispose(self) -> None:
        self._sessions.remove()
        self._engine.dispose()
