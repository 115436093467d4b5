"""
Feature Flag Models - SQLAlchemy model for stored feature values.

Tables:
- features: One row per (feature name, serialized scope) with a JSON value
"""

from sqlalchemy import Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from flagkeeper.models.base import Base, TimestampMixin


class FeatureModel(Base, TimestampMixin):
    """
    Resolved feature value for a single scope.

    ``scope`` holds the serialized scope key (see ``serialize_scope``),
    ``value`` the JSON-encoded value.
    """

    __tablename__ = "features"
    __table_args__ = (
        UniqueConstraint("name", "scope", name="uq_features_name_scope"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    scope: Mapped[str | None] = mapped_column(String(255), nullable=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Feature {self.name} [{self.scope}]={self.value}>"
