"""
SQLAlchemy-backed state store.

One row per (address, signature) holding the serialised Activity. save()
upserts the whole collection for an address inside one session transaction,
the commit point of a reconciliation pass. Rows are never deleted here;
pruning, if ever needed, is a separate maintenance job.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import BigInteger, Column, Integer, String, Text, UniqueConstraint, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from wallet_activity.activity.models import Activity
from wallet_activity.activity_logging import get_logger
from wallet_activity.core.exceptions import StateStoreError

logger = get_logger(__name__)

Base = declarative_base()


class WalletActivityRow(Base):
    """Persisted activity: one row per signature per address."""

    __tablename__ = "wallet_activities"
    __table_args__ = (UniqueConstraint("address", "signature", name="uq_wallet_activity"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String(64), nullable=False, index=True)
    signature = Column(String(128), nullable=False, index=True)
    status = Column(String(16), nullable=False)
    updated_at = Column(BigInteger, nullable=False, default=0)  # epoch ms
    order_id = Column(String(128), nullable=True, index=True)
    payload = Column(Text, nullable=False)  # Activity.to_dict() as JSON

    def to_activity(self) -> Activity:
        return Activity.from_dict(json.loads(self.payload))


class SqlStateStore:
    """Store bound to one database URL (sqlite:///path or any SQLAlchemy URL)."""

    def __init__(self, database_url: str) -> None:
        connect_args: dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self._engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info("state_store_engine", url=database_url.split("?")[0].split("//")[-1])

    def init_db(self) -> None:
        """Create tables if they do not exist. Safe to call on every startup."""
        try:
            Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as e:
            logger.exception("state_store_init_failed", error=str(e))
            raise StateStoreError(f"Could not create tables: {e}") from e

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load(self, address: str) -> dict[str, Activity]:
        try:
            with self._session_scope() as session:
                rows = session.query(WalletActivityRow).filter(WalletActivityRow.address == address).all()
                return {row.signature: row.to_activity() for row in rows}
        except SQLAlchemyError as e:
            logger.exception("state_store_load_failed", wallet_id=address, error=str(e))
            raise StateStoreError(f"Could not load activities for {address}: {e}") from e

    def save(self, address: str, activities: dict[str, Activity]) -> None:
        try:
            with self._session_scope() as session:
                rows = {
                    row.signature: row
                    for row in session.query(WalletActivityRow).filter(WalletActivityRow.address == address)
                }
                for signature, activity in activities.items():
                    payload = json.dumps(activity.to_dict())
                    row = rows.get(signature)
                    if row is None:
                        session.add(
                            WalletActivityRow(
                                address=address,
                                signature=signature,
                                status=activity.status.value,
                                updated_at=activity.updated_at,
                                order_id=activity.id,
                                payload=payload,
                            )
                        )
                    elif row.payload != payload:
                        row.status = activity.status.value
                        row.updated_at = activity.updated_at
                        row.order_id = activity.id
                        row.payload = payload
            logger.debug("state_store_saved", activity_count=len(activities))
        except SQLAlchemyError as e:
            logger.exception("state_store_save_failed", wallet_id=address, error=str(e))
            raise StateStoreError(f"Could not save activities for {address}: {e}") from e

    def addresses(self) -> list[str]:
        """Addresses with at least one stored activity."""
        try:
            with self._session_scope() as session:
                rows = session.query(WalletActivityRow.address).distinct().order_by(WalletActivityRow.address).all()
                return [r[0] for r in rows]
        except SQLAlchemyError as e:
            logger.exception("state_store_addresses_failed", error=str(e))
            raise StateStoreError(f"Could not list tracked addresses: {e}") from e
