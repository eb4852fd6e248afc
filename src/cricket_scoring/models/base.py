"""Declarative base for the scoring database."""

from typing import Any, Mapping

from sqlalchemy import Column, Integer, DateTime, func
from sqlalchemy.orm import declarative_base


class Base:
    """Surrogate key and audit timestamps shared by every table."""

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def update_from(self, values: Mapping[str, Any]) -> None:
        """Copy column values onto the row; a key that is not a column is an error."""
        unknown = set(values) - set(self.__table__.columns.keys())
        if unknown:
            raise KeyError(f"{type(self).__name__} has no column(s) {sorted(unknown)}")
        for name, value in values.items():
            setattr(self, name, value)


Base = declarative_base(cls=Base)
