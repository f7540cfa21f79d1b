"""
Shot catalog: the coaching core's view of persisted beans and shots.

``ShotCatalog`` is the protocol the detail analyzer and the workflow depend
on. Every method returns a ``Result`` so collaborator failures can be passed
through unchanged. ``SqliteShotCatalog`` implements it over the bean and
shot repositories.

Live updates
------------
``subscribe(callback)`` registers a passive observer that receives the full
shot list (ascending by timestamp) after every successful write through the
catalog. It returns a zero-argument callable that removes the subscription.
Callback exceptions are logged and do not affect the write.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime
from typing import Optional, Protocol

from shot_coach.db.repositories.bean_repo import BeanRepository
from shot_coach.db.repositories.shot_repo import ShotRepository
from shot_coach.errors import ErrorKind, Ok, Result, failure, storage_call
from shot_coach.models.shot import Bean, Shot
from shot_coach.taxonomy.shot_taxonomy import TastePrimary, TasteSecondary

logger = logging.getLogger(__name__)

ShotListener = Callable[[list[Shot]], None]


class ShotCatalog(Protocol):
    """Read/write access to beans and shots, returning typed results."""

    def get_shot(self, shot_id: int) -> Result[Optional[Shot]]: ...

    def get_bean(self, bean_id: int) -> Result[Optional[Bean]]: ...

    def get_shots_for_bean(self, bean_id: int) -> Result[list[Shot]]: ...

    def get_last_shot_for_bean(self, bean_id: int) -> Result[Optional[Shot]]: ...

    def get_all_shots(self) -> Result[list[Shot]]: ...

    def get_shots_between(self, start: datetime, end: datetime) -> Result[list[Shot]]: ...

    def record_shot(self, shot: Shot) -> Result[Shot]: ...

    def update_taste_feedback(
        self,
        shot_id: int,
        taste_primary: Optional[TastePrimary],
        taste_secondary: Optional[TasteSecondary] = None,
    ) -> Result[Shot]: ...

    def subscribe(self, callback: ShotListener) -> Callable[[], None]: ...


class SqliteShotCatalog:
    """``ShotCatalog`` backed by the ``beans`` and ``shots`` tables.

    Args:
        conn: Open connection; the caller commits (``get_connection()``).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._beans = BeanRepository(conn)
        self._shots = ShotRepository(conn)
        self._listeners: list[ShotListener] = []

    # ── Reads ────────────────────────────────────────────────────────────────

    def get_shot(self, shot_id: int) -> Result[Optional[Shot]]:
        return storage_call(self._shots.get_by_id, shot_id, message=f"Failed to load shot {shot_id}")

    def get_bean(self, bean_id: int) -> Result[Optional[Bean]]:
        return storage_call(self._beans.get_by_id, bean_id, message=f"Failed to load bean {bean_id}")

    def get_shots_for_bean(self, bean_id: int) -> Result[list[Shot]]:
        return storage_call(
            self._shots.get_by_bean, bean_id, message=f"Failed to load shots for bean {bean_id}"
        )

    def get_last_shot_for_bean(self, bean_id: int) -> Result[Optional[Shot]]:
        return storage_call(
            self._shots.get_last_for_bean,
            bean_id,
            message=f"Failed to load last shot for bean {bean_id}",
        )

    def get_all_shots(self) -> Result[list[Shot]]:
        return storage_call(self._shots.get_all, message="Failed to load shots")

    def get_shots_between(self, start: datetime, end: datetime) -> Result[list[Shot]]:
        return storage_call(
            self._shots.get_between, start, end, message="Failed to load shots in range"
        )

    # ── Writes ───────────────────────────────────────────────────────────────

    def record_shot(self, shot: Shot) -> Result[Shot]:
        """Validate and insert ``shot``; returns it with ``shot_id`` assigned.

        Fails with VALIDATION when recording limits are violated and NOT_FOUND
        when the bean does not exist. Also stores the shot's grind setting as
        the bean's ``last_grinder_setting``.
        """
        errors = shot.validation_errors()
        if errors:
            return failure(ErrorKind.VALIDATION, "; ".join(errors))

        bean_result = self.get_bean(shot.bean_id)
        if not bean_result.is_ok:
            return bean_result
        if bean_result.value is None:
            return failure(ErrorKind.NOT_FOUND, f"Bean {shot.bean_id} not found")

        def _insert() -> Shot:
            shot_id = self._shots.insert(shot)
            self._beans.update_last_grinder_setting(shot.bean_id, shot.grinder_setting)
            return shot.model_copy(update={"shot_id": shot_id})

        result = storage_call(_insert, message="Failed to record shot")
        if result.is_ok:
            logger.info(
                "Recorded shot %d for bean %d: %.1fg → %.1fg in %ds @ %s",
                result.value.shot_id,
                shot.bean_id,
                shot.coffee_weight_in,
                shot.coffee_weight_out,
                shot.extraction_time_seconds,
                shot.grinder_setting,
            )
            self._notify()
        return result

    def update_taste_feedback(
        self,
        shot_id: int,
        taste_primary: Optional[TastePrimary],
        taste_secondary: Optional[TasteSecondary] = None,
    ) -> Result[Shot]:
        """Replace the taste feedback of an existing shot."""
        shot_result = self.get_shot(shot_id)
        if not shot_result.is_ok:
            return shot_result
        shot = shot_result.value
        if shot is None:
            return failure(ErrorKind.NOT_FOUND, f"Shot {shot_id} not found")

        result = storage_call(
            self._shots.update_taste,
            shot_id,
            taste_primary,
            taste_secondary,
            message=f"Failed to update taste for shot {shot_id}",
        )
        if not result.is_ok:
            return result

        logger.info("Taste for shot %d set to %s", shot_id, taste_primary or "none")
        self._notify()
        return Ok(shot.with_taste(taste_primary, taste_secondary))

    # ── Live updates ─────────────────────────────────────────────────────────

    def subscribe(self, callback: ShotListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        shots = self.get_all_shots()
        if not shots.is_ok:
            logger.warning("Skipping shot listeners: %s", shots.error)
            return
        for listener in list(self._listeners):
            try:
                listener(shots.value)
            except Exception:
                logger.exception("Shot listener %r failed", listener)
