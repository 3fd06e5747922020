"""
Insert Gate: validate -> referential check -> duplicate check -> persist.

Every step fails fast. Nothing is retried. The peer scan and the insert are not
wrapped in one transaction, so two concurrent creates of the same near-duplicate
can both pass the check (accepted; see DESIGN.md).
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.portal.audit import record_event
from app.portal.duplicates import DuplicatePolicy, policy_fields
from app.portal.errors import DuplicateConflict, PersistenceFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsertGate:
    entity: str
    action: str
    policy: DuplicatePolicy
    clean: Callable[[Mapping[str, Any]], dict[str, Any]]
    load_peers: Callable[[Session], Iterable[Mapping[str, Any]]]
    persist: Callable[[Session, dict[str, Any], Any], Any]
    present: Callable[[Any], dict[str, Any]]
    check_references: Callable[[Session, dict[str, Any]], None] | None = None

    def _read(self, s: Session, step: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except SQLAlchemyError as e:
            s.rollback()
            logger.exception("%s %s failed", self.entity, step)
            raise PersistenceFailure(str(getattr(e, "orig", None) or e)) from e

    def run(self, s: Session, payload: Mapping[str, Any], actor: Any = None) -> dict[str, Any]:
        # FieldInvalid propagates from clean()
        candidate = self.clean(payload)

        if self.check_references is not None:
            # ReferentialMissing propagates; datastore errors become PersistenceFailure
            self._read(s, "reference check", lambda: self.check_references(s, candidate))

        peers = self._read(s, "peer scan", lambda: list(self.load_peers(s)))

        conflict = self.policy.find_conflict(candidate, peers)
        if conflict is not None:
            logger.info(
                "%s create rejected as duplicate (clause=%s fields=%s peers=%d)",
                self.entity,
                conflict.clause,
                ",".join(policy_fields(self.policy)),
                len(peers),
            )
            raise DuplicateConflict(conflict.existing)

        try:
            obj = self.persist(s, candidate, actor)
            s.flush()
            record_event(
                s,
                actor=actor,
                action=self.action,
                entity_type=self.entity,
                entity_id=str(getattr(obj, "id", "")),
                metadata={k: v for k, v in candidate.items() if isinstance(v, (str, int, float))},
            )
            s.commit()
        except SQLAlchemyError as e:
            s.rollback()
            logger.exception("%s insert failed", self.entity)
            raise PersistenceFailure(str(getattr(e, "orig", None) or e)) from e

        logger.info("%s created id=%s", self.entity, getattr(obj, "id", None))
        return self.present(obj)
