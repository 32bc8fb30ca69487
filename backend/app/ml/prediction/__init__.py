"""
Prediction Engine for RecoverIQ

- Recovery Timeline: rule-based return-to-play estimate with nutrition
  targets and a phased rehabilitation plan
"""

from app.ml.prediction.recovery import RecoveryPlan, estimate_recovery

__all__ = ["RecoveryPlan", "estimate_recovery"]
