"""
Database driver for feature flags.

Uses a SQL table (``features``) through SQLAlchemy for persistent storage.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from sqlalchemy import and_, delete, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ..interfaces import FeatureDriver, CanListStoredFeatures
from ..models import FeatureModel
from ..registry import UNKNOWN

logger = structlog.get_logger(__name__)


class DatabaseFeatureDriver(FeatureDriver, CanListStoredFeatures):
    """
    SQL-backed feature storage.

    Rows are unique per (name, scope). When two processes resolve the same
    pair concurrently, the loser of the insert race re-reads and returns the
    winner's value.
    """

    def __init__(
        self,
        name,
        hooks,
        resolvers=None,
        *,
        session_factory: sessionmaker[Session],
    ):
        super().__init__(name, hooks, resolvers)
        self.session_factory = session_factory

    def _serialize(self, value: Any) -> str:
        return json.dumps(value)

    def _deserialize(self, value: str) -> Any:
        return json.loads(value)

    def _where(self, feature: str, key: str):
        return and_(FeatureModel.name == feature, FeatureModel.scope == key)

    # ============================================================
    # READ OPERATIONS
    # ============================================================

    def get(self, feature: str, scope: Any) -> Any:
        """Get the stored value, resolving and inserting it on first use."""
        key = self.serialize_scope(scope)

        stored = self._retrieve(feature, key)
        if stored is not None:
            return self._deserialize(stored)

        value = self.resolve_value(feature, scope)
        if value is UNKNOWN:
            return False

        return self._insert(feature, key, value)

    def get_all(self, features: dict[str, list[Any]]) -> dict[str, list[Any]]:
        """
        Get many values with one SELECT and at most one batched INSERT.

        All requested (name, scope) pairs are fetched with a single filter,
        one OR branch per feature. Missing values are resolved once per
        pair and inserted together.
        """
        requests = [
            (feature, scope, self.serialize_scope(scope))
            for feature, scopes in features.items()
            for scope in scopes
        ]
        if not requests:
            return {feature: [] for feature in features}

        # One OR branch per feature: SQLite caps expression depth at 1000
        keys: dict[str, dict[str, None]] = {}
        for feature, _, key in requests:
            keys.setdefault(feature, {})[key] = None

        with self.session_factory() as session:
            rows = session.execute(
                select(FeatureModel.name, FeatureModel.scope, FeatureModel.value)
                .where(or_(*(
                    and_(FeatureModel.name == feature, FeatureModel.scope.in_(list(scope_keys)))
                    for feature, scope_keys in keys.items()
                )))
            ).all()

        stored = {(row.name, row.scope): row.value for row in rows}
        results: dict[str, list[Any]] = {feature: [] for feature in features}
        resolved: dict[tuple[str, str], Any] = {}
        positions: dict[tuple[str, str], list[int]] = {}

        for feature, scope, key in requests:
            pair = (feature, key)

            if pair in stored:
                results[feature].append(self._deserialize(stored[pair]))
                continue

            if pair not in resolved:
                resolved[pair] = self.resolve_value(feature, scope)

            value = resolved[pair]
            if value is not UNKNOWN:
                positions.setdefault(pair, []).append(len(results[feature]))
            results[feature].append(False if value is UNKNOWN else value)

        if positions:
            self._insert_many(
                {pair: resolved[pair] for pair in positions},
                results,
                positions,
            )

        return results

    def _retrieve(self, feature: str, key: str) -> str | None:
        with self.session_factory() as session:
            return session.scalar(
                select(FeatureModel.value).where(self._where(feature, key))
            )

    # ============================================================
    # WRITE OPERATIONS
    # ============================================================

    def set(self, feature: str, scope: Any, value: Any) -> None:
        """Update the row for the scope, inserting it if none exists."""
        key = self.serialize_scope(scope)
        serialized = self._serialize(value)

        try:
            with self.session_factory.begin() as session:
                if not self._update(session, feature, key, serialized):
                    session.add(FeatureModel(name=feature, scope=key, value=serialized))
        except IntegrityError:
            # A concurrent insert created the row first
            with self.session_factory.begin() as session:
                self._update(session, feature, key, serialized)

    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        with self.session_factory.begin() as session:
            session.execute(
                update(FeatureModel)
                .where(FeatureModel.name == feature)
                .values(value=self._serialize(value))
            )

    def delete(self, feature: str, scope: Any) -> None:
        with self.session_factory.begin() as session:
            session.execute(
                delete(FeatureModel).where(
                    self._where(feature, self.serialize_scope(scope))
                )
            )

    def purge(self, features: list[str] | None = None) -> None:
        query = delete(FeatureModel)
        if features is not None:
            query = query.where(FeatureModel.name.in_(features))

        with self.session_factory.begin() as session:
            result = session.execute(query)

        logger.debug("feature.database_purged", driver=self.name, rows=result.rowcount)

    def _update(self, session: Session, feature: str, key: str, serialized: str) -> bool:
        result = session.execute(
            update(FeatureModel)
            .where(self._where(feature, key))
            .values(value=serialized)
        )
        return result.rowcount > 0

    def _insert(self, feature: str, key: str, value: Any) -> Any:
        """Insert a resolved value; returns the value that ended up stored."""
        try:
            with self.session_factory.begin() as session:
                session.add(
                    FeatureModel(name=feature, scope=key, value=self._serialize(value))
                )
        except IntegrityError:
            stored = self._retrieve(feature, key)
            if stored is None:
                raise
            logger.debug("feature.insert_race_lost", feature=feature, driver=self.name)
            return self._deserialize(stored)

        return value

    def _insert_many(
        self,
        values: dict[tuple[str, str], Any],
        results: dict[str, list[Any]],
        positions: dict[tuple[str, str], list[int]],
    ) -> None:
        rows = [
            {"name": feature, "scope": key, "value": self._serialize(value)}
            for (feature, key), value in values.items()
        ]

        try:
            with self.session_factory.begin() as session:
                session.execute(insert(FeatureModel), rows)
        except IntegrityError:
            # Some rows were stored concurrently; fall back to one insert per pair
            for (feature, key), value in values.items():
                stored_value = self._insert(feature, key, value)
                for index in positions[(feature, key)]:
                    results[feature][index] = stored_value

    # ============================================================
    # INTROSPECTION
    # ============================================================

    def stored(self) -> list[str]:
        with self.session_factory() as session:
            return list(
                session.scalars(
                    select(FeatureModel.name).distinct().order_by(FeatureModel.name)
                )
            )

    def stored_values(self) -> dict[str, list[Any]]:
        with self.session_factory() as session:
            rows = session.execute(
                select(FeatureModel.name, FeatureModel.value).order_by(FeatureModel.id)
            ).all()

        values: dict[str, list[Any]] = {}
        for row in rows:
            values.setdefault(row.name, []).append(self._deserialize(row.value))
        return values
