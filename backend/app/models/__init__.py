# RecoverIQ Database Models
from app.models.user import User
from app.models.athlete_profile import AthleteProfile
from app.models.injury import Injury
from app.models.medical_report import MedicalReport
from app.models.recovery_recommendation import RecoveryRecommendation

__all__ = [
    "User",
    "AthleteProfile",
    "Injury",
    "MedicalReport",
    "RecoveryRecommendation",
]
