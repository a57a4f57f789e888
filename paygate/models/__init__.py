from paygate.models.feature_unlock import FeatureUnlock

__all__ = ["FeatureUnlock"]
