import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from paygate.core.errors import FailureKind, PaymentVerificationError
from paygate.models.feature_unlock import FeatureUnlock
from paygate.utils.metrics import feature_unlocks_total

logger = logging.getLogger(__name__)


class FeatureUnlockService:
    """Grants features against verified payments. Safe to call again for the same payment."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_signature(self, tx_signature: str) -> FeatureUnlock | None:
        return (
            self.db.query(FeatureUnlock)
            .filter(FeatureUnlock.tx_signature == tx_signature)
            .one_or_none()
        )

    def is_unlocked(self, wallet: str, feature: str) -> bool:
        return (
            self.db.query(FeatureUnlock)
            .filter(FeatureUnlock.wallet == wallet, FeatureUnlock.feature == feature)
            .first()
            is not None
        )

    def grant(
        self,
        tx_signature: str,
        wallet: str,
        feature: str,
        network: str | None = None,
    ) -> tuple[FeatureUnlock, bool]:
        """
        Record the unlock. Returns (unlock, created).
        A repeat for the same payment returns the existing row with created=False.
        A payment already bound to another wallet or feature raises
        SIGNATURE_ALREADY_USED. Caller commits.
        """
        existing = self.get_by_signature(tx_signature)
        if existing is None:
            unlock = FeatureUnlock(
                tx_signature=tx_signature,
                wallet=wallet,
                feature=feature,
                network=network,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(unlock)
                    self.db.flush()
            except IntegrityError:
                # A concurrent retry of this step won the insert.
                existing = self.get_by_signature(tx_signature)
                if existing is None:
                    raise
            else:
                feature_unlocks_total.labels(created="true").inc()
                logger.info(
                    "feature_unlocked",
                    extra={"tx_signature": tx_signature, "wallet": wallet, "feature": feature},
                )
                return unlock, True

        if existing.wallet != wallet or existing.feature != feature:
            logger.warning(
                "unlock_signature_already_used",
                extra={
                    "tx_signature": tx_signature,
                    "wallet": wallet,
                    "feature": feature,
                },
            )
            raise PaymentVerificationError(
                FailureKind.SIGNATURE_ALREADY_USED,
                f"Transaction {tx_signature} already unlocked {existing.feature} for {existing.wallet}",
            )

        feature_unlocks_total.labels(created="false").inc()
        logger.info(
            "feature_unlock_repeat",
            extra={"tx_signature": tx_signature, "wallet": wallet, "feature": feature},
        )
        return existing, False
