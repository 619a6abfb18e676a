"""Table-scoped access to the hosted rental database.

Every operation names a table and works on plain dict rows. Each write
commits on its own; callers that chain writes get no transaction spanning
them. SQLAlchemy failures surface as ``GatewayError``.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.rental_models import Customer, Machine, MachineModel, Operator, Rental
from services.errors import GatewayError


GATEWAY_LOGGER = logging.getLogger("machine_desk.gateway")

TABLES = {
    "machines": Machine,
    "model": MachineModel,
    "rentals": Rental,
    "customers": Customer,
    "operators": Operator,
}


def _model_for(table: str):
    model = TABLES.get(table)
    if model is None:
        raise GatewayError(f"Unknown table: {table}")
    return model


def _column(model, table: str, name: str):
    if name not in model.__table__.columns:
        raise GatewayError(f"Unknown column {table}.{name}")
    return getattr(model, name)


def row_to_dict(row) -> dict[str, Any]:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


class RentalGateway:
    def __init__(self, db: Session):
        self.db = db

    def _statement(self, table: str, filters: dict[str, Any] | None, order_by: list[str] | None = None):
        model = _model_for(table)
        stmt = select(model)
        for name, value in (filters or {}).items():
            stmt = stmt.where(_column(model, table, name) == value)
        for key in order_by or []:
            descending = key.startswith("-")
            column = _column(model, table, key.lstrip("-"))
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        return stmt

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        order_by: list[str] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        stmt = self._statement(table, filters, order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            rows = self.db.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            GATEWAY_LOGGER.error("Select failed table=%s filters=%s error=%s", table, filters, exc)
            raise GatewayError(f"Could not read {table}: {exc}") from exc
        return [row_to_dict(row) for row in rows]

    def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        model = _model_for(table)
        for name in record:
            _column(model, table, name)
        row = model(**record)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self.db.rollback()
            GATEWAY_LOGGER.error("Insert failed table=%s error=%s", table, exc)
            raise GatewayError(f"Could not write {table}: {exc}") from exc
        return row_to_dict(row)

    def update(self, table: str, filters: dict[str, Any], patch: dict[str, Any]) -> list[dict[str, Any]]:
        if not filters:
            raise GatewayError(f"Refusing unfiltered update on {table}")
        model = _model_for(table)
        for name in patch:
            _column(model, table, name)
        stmt = self._statement(table, filters)
        try:
            rows = self.db.execute(stmt).scalars().all()
            for row in rows:
                for name, value in patch.items():
                    setattr(row, name, value)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            GATEWAY_LOGGER.error("Update failed table=%s filters=%s error=%s", table, filters, exc)
            raise GatewayError(f"Could not update {table}: {exc}") from exc
        return [row_to_dict(row) for row in rows]

    def ping(self) -> None:
        try:
            self.db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise GatewayError(f"db_unavailable: {exc}") from exc
