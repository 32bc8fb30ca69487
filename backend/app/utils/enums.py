from enum import Enum


class InjurySeverity(str, Enum):
    mild = "mild"
    moderate = "moderate"
    severe = "severe"


class InjuryStatus(str, Enum):
    active = "active"
    recovering = "recovering"
    recovered = "recovered"


class ReportType(str, Enum):
    mri = "mri"
    xray = "xray"
    ultrasound = "ultrasound"
    ct = "ct"
    clinical = "clinical"
    other = "other"


class AnalysisStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
