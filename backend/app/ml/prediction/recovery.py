"""
Recovery Timeline Estimator

Rule-based return-to-play estimate used for every stored recovery plan:
- Base recovery days per injury type
- Severity multiplier (mild 1.0, moderate 1.2, severe 1.5)
- Age-adjusted calorie and protein targets
- Four-phase rehabilitation breakdown scaled to the minimum recovery window
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Any


BASE_RECOVERY_DAYS: Dict[str, int] = {
    "acl": 180,
    "meniscus": 90,
    "hamstring": 45,
    "ankle-sprain": 30,
    "shoulder": 120,
    "concussion": 21,
    "fracture": 90,
    "other": 60,
}

DEFAULT_RECOVERY_DAYS = 60

# Injury types offered by the upload form that map onto a base-days entry
INJURY_TYPE_ALIASES: Dict[str, str] = {
    "acl-tear": "acl",
    "meniscus-tear": "meniscus",
    "hamstring-strain": "hamstring",
    "stress-fracture": "fracture",
    "bone-fracture": "fracture",
    "rotator-cuff": "shoulder",
    "shoulder-dislocation": "shoulder",
    "labrum-tear": "shoulder",
}

SEVERITY_MULTIPLIERS: Dict[str, float] = {
    "severe": 1.5,
    "moderate": 1.2,
}

REHABILITATION_PHASES = [
    ("Acute Protection", 0.15, ["Rest", "Ice", "Compression", "Anti-inflammatory protocol"]),
    ("Early Mobilization", 0.25, ["Range of motion", "Light stretching", "Pool therapy"]),
    ("Strength Building", 0.35, ["Progressive resistance", "Stability training", "Sport-specific drills"]),
    ("Return to Sport", 0.25, ["Full training", "Contact drills", "Performance testing"]),
]

CONFIDENCE_SCORE = 0.85
REST_FRACTION = 0.15
PROTEIN_CALORIE_SHARE = 0.25  # 25% of calories from protein, 4 kcal per gram


def round_half_up(value: float) -> int:
    """Round .5 upwards (Python's round() rounds half to even)."""
    return int(math.floor(value + 0.5))


def normalize_injury_type(injury_type: str) -> str:
    key = (injury_type or "").strip().lower()
    return INJURY_TYPE_ALIASES.get(key, key)


def severity_multiplier(severity: Any) -> float:
    value = getattr(severity, "value", severity)
    return SEVERITY_MULTIPLIERS.get(str(value).lower(), 1.0)


@dataclass
class RiskFactor:
    factor: str
    importance: float
    impact_days: int


@dataclass
class RehabilitationPhase:
    phase: str
    duration_days: int
    activities: List[str] = field(default_factory=list)


@dataclass
class RecoveryPlan:
    """Structured recovery estimate for one injury"""
    min_days: int
    max_days: int
    rest_days: int
    daily_calories: int
    daily_protein_grams: int
    confidence: float
    key_risk_factors: List[RiskFactor]
    rehabilitation_phases: List[RehabilitationPhase]

    def risk_factors_json(self) -> List[Dict[str, Any]]:
        return [asdict(f) for f in self.key_risk_factors]

    def phases_json(self) -> List[Dict[str, Any]]:
        return [asdict(p) for p in self.rehabilitation_phases]

    def predictions(self) -> Dict[str, int]:
        """Summary returned to the client after an analysis run."""
        return {
            "minDays": self.min_days,
            "maxDays": self.max_days,
            "restDays": self.rest_days,
            "dailyCalories": self.daily_calories,
            "dailyProtein": self.daily_protein_grams,
        }


def estimate_recovery(injury_type: str, severity: Any, age: int) -> RecoveryPlan:
    """
    Estimate the return-to-play window and support plan for an injury.

    Args:
        injury_type: Injury type key (aliases from the upload form accepted)
        severity: mild, moderate or severe (unknown values count as mild)
        age: Athlete age in whole years

    Returns:
        RecoveryPlan with RTP range, nutrition targets, risks and phases
    """
    multiplier = severity_multiplier(severity)
    base_days = BASE_RECOVERY_DAYS.get(normalize_injury_type(injury_type), DEFAULT_RECOVERY_DAYS)

    min_days = round_half_up(base_days * 0.8 * multiplier)
    max_days = round_half_up(base_days * 1.2 * multiplier)
    rest_days = round_half_up(min_days * REST_FRACTION)

    base_calories = 2800 if age < 25 else 2600
    daily_calories = round_half_up(base_calories * multiplier)
    daily_protein = round_half_up((daily_calories * PROTEIN_CALORIE_SHARE) / 4)

    older = age > 30
    risk_factors = [
        RiskFactor("Injury severity", 0.9, round_half_up((max_days - min_days) * 0.4)),
        RiskFactor("Age-related healing", 0.7 if older else 0.4, 15 if older else 5),
        RiskFactor("Sport-specific demands", 0.6, 10),
    ]

    phases = [
        RehabilitationPhase(name, round_half_up(min_days * fraction), list(activities))
        for name, fraction, activities in REHABILITATION_PHASES
    ]

    return RecoveryPlan(
        min_days=min_days,
        max_days=max_days,
        rest_days=rest_days,
        daily_calories=daily_calories,
        daily_protein_grams=daily_protein,
        confidence=CONFIDENCE_SCORE,
        key_risk_factors=risk_factors,
        rehabilitation_phases=phases,
    )
