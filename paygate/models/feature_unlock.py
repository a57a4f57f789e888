"""
FeatureUnlock: one row per verified payment that unlocked a feature.
tx_signature is unique: a payment unlocks at most one (wallet, feature).
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String

from paygate.db.base import Base


class FeatureUnlock(Base):
    __tablename__ = "feature_unlocks"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    tx_signature = Column(String, unique=True, nullable=False)
    wallet = Column(String, nullable=False, index=True)
    feature = Column(String, nullable=False)
    network = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
