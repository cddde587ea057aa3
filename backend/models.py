"""
ToxinFlow: Data Dictionary
==========================
Defines the session state space for the Dosage Calculation Engine:
Inputs (patient, selection), reference records (protocols) and Outputs
(alerts, calculation snapshots).

NO DOSING LOGIC is implemented here. Only validation of the inputs and
(de)serialization of the outputs.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
from constants import VERSION, ToxinBrand, DosageTier

class InvalidPatientData(ValueError):
    """Raised when patient age/weight cannot be used for a calculation."""
    pass

class ReferenceNotFound(LookupError):
    """Raised when a (brand, muscle) pair has no reference dose range."""
    pass

class UnknownBrandError(ValueError):
    """Raised when a brand name is outside the supported set."""
    pass

class UnknownPathologyError(LookupError):
    """Raised when a pathology id is not in the protocol library."""
    pass

# --- 1. ENUMS ---

class AlertSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

class RecommendationPriority(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"

# --- 2. INPUT LAYER ---

@dataclass
class Patient:
    """
    Partial patient information. Every field is optional; missing age or
    weight simply disables the pediatric adjustment.
    """
    name: Optional[str] = None
    weight_kg: Optional[float] = None
    age_years: Optional[int] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Rejects unusable data instead of coercing it.
        Called again by the engine in case the instance was mutated.
        """
        if self.weight_kg is not None:
            if isinstance(self.weight_kg, bool) or not isinstance(self.weight_kg, (int, float)):
                raise InvalidPatientData(f"Weight must be numeric, got {type(self.weight_kg).__name__}")
            if not math.isfinite(self.weight_kg) or self.weight_kg <= 0:
                raise InvalidPatientData(f"Weight must be > 0 kg, got {self.weight_kg}")

        if self.age_years is not None:
            if isinstance(self.age_years, bool) or not isinstance(self.age_years, int):
                raise InvalidPatientData(f"Age must be a whole number of years, got {self.age_years!r}")
            if self.age_years < 0:
                raise InvalidPatientData(f"Age must be >= 0 years, got {self.age_years}")

        if self.name is not None and not isinstance(self.name, str):
            raise InvalidPatientData("Patient name must be text")

    def to_dict(self) -> dict:
        return {"name": self.name, "weight_kg": self.weight_kg, "age_years": self.age_years}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Patient":
        data = data or {}
        return cls(name=data.get("name"), weight_kg=data.get("weight_kg"), age_years=data.get("age_years"))

@dataclass
class SelectedMuscle:
    """A muscle chosen for the current session."""
    name: str
    dosage_type: DosageTier
    base_amount: int        # Copied from the reference table for dosage_type
    adjusted_amount: int    # round(base_amount * adjustment_factor)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "dosage_type": self.dosage_type.value,
            "base_amount": self.base_amount,
            "adjusted_amount": self.adjusted_amount,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SelectedMuscle":
        return cls(
            name=data["name"],
            dosage_type=DosageTier(data["dosage_type"]),
            base_amount=int(data["base_amount"]),
            adjusted_amount=int(data["adjusted_amount"]),
        )

# --- 3. REFERENCE RECORDS (Protocols) ---

@dataclass(frozen=True)
class MuscleRecommendation:
    muscle_name: str
    priority: RecommendationPriority
    recommended_dosage: DosageTier

@dataclass(frozen=True)
class Pathology:
    id: str
    name: str
    description: str
    # Brands without an entry have no recommendations (valid, not an error)
    recommended_muscles: Dict[ToxinBrand, Tuple[MuscleRecommendation, ...]]
    references: Tuple[str, ...] = ()

    def recommendations_for(self, brand: ToxinBrand) -> Tuple[MuscleRecommendation, ...]:
        return self.recommended_muscles.get(brand, ())

# --- 4. OUTPUT LAYER ---

@dataclass(frozen=True)
class SafetyAlert:
    message: str
    severity: AlertSeverity

    def to_dict(self) -> dict:
        return {"message": self.message, "severity": self.severity.value}

    @classmethod
    def from_dict(cls, data: dict) -> "SafetyAlert":
        return cls(message=data["message"], severity=AlertSeverity(data["severity"]))

@dataclass
class CalculationResult:
    """
    Snapshot returned to the host after every state change.
    total_dose is None in the idle state (nothing selected).
    """
    total_dose: Optional[int]
    muscles_list: List[SelectedMuscle]
    brand: ToxinBrand
    patient: Patient
    alerts: List[SafetyAlert] = field(default_factory=list)
    pathology_id: Optional[str] = None
    adjustment_factor: float = 1.0
    timestamp: Optional[str] = None
    model_version: str = VERSION

    def recomputed_total(self) -> Optional[int]:
        """Re-aggregates the dose from muscles_list (used after deserialization)."""
        if not self.muscles_list:
            return None
        return sum(m.adjusted_amount for m in self.muscles_list)

    def to_dict(self) -> dict:
        """Convert to a JSON-safe dictionary."""
        return {
            "total_dose": self.total_dose,
            "muscles_list": [m.to_dict() for m in self.muscles_list],
            "brand": self.brand.value,
            "patient": self.patient.to_dict(),
            "alerts": [a.to_dict() for a in self.alerts],
            "pathology_id": self.pathology_id,
            "adjustment_factor": self.adjustment_factor,
            "timestamp": self.timestamp,
            "model_version": self.model_version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CalculationResult":
        return cls(
            total_dose=data.get("total_dose"),
            muscles_list=[SelectedMuscle.from_dict(m) for m in data.get("muscles_list", [])],
            brand=ToxinBrand.parse(data["brand"]),
            patient=Patient.from_dict(data.get("patient")),
            alerts=[SafetyAlert.from_dict(a) for a in data.get("alerts", [])],
            pathology_id=data.get("pathology_id"),
            adjustment_factor=float(data.get("adjustment_factor", 1.0)),
            timestamp=data.get("timestamp"),
            model_version=data.get("model_version", VERSION),
        )
