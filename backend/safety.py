# safety.py
import logging
from typing import List, Optional

from config import EngineSettings
from constants import ToxinBrand, PEDIATRIC_CONSTANTS, round_units
from models import (
    AlertSeverity, CalculationResult, Patient, SafetyAlert, SelectedMuscle,
    ReferenceNotFound, UnknownPathologyError,
)

logger = logging.getLogger(__name__)

def session_limit_message(total: int, brand: ToxinBrand, limit: int) -> str:
    # Other components parse this text; keep the shape stable.
    return f"Total dose ({total}U) exceeds recommended session limit for {brand.value} ({limit}U)"

class SafetySupervisor:
    """
    Aggregates the session dose and converts unsafe conditions into alerts.
    Alerts are data: an over-limit total is still returned to the caller.
    """
    @staticmethod
    def _push(alerts: List[SafetyAlert], message: str, severity: AlertSeverity) -> None:
        # Same text is never reported twice in one evaluation
        if any(a.message == message for a in alerts):
            return
        alerts.append(SafetyAlert(message=message, severity=severity))

    @staticmethod
    def evaluate(brand: ToxinBrand,
                 selected_muscles: List[SelectedMuscle],
                 patient: Patient,
                 pathology_id: Optional[str],
                 adjustment_factor: float,
                 store,
                 settings: Optional[EngineSettings] = None) -> CalculationResult:
        settings = settings or EngineSettings()
        muscles = list(selected_muscles)

        # 1. Idle state
        if not muscles:
            return CalculationResult(
                total_dose=None, muscles_list=[], brand=brand, patient=patient,
                alerts=[], pathology_id=pathology_id, adjustment_factor=adjustment_factor,
            )

        alerts: List[SafetyAlert] = []

        # 2. Pediatric adjustment is always auditable
        if adjustment_factor != PEDIATRIC_CONSTANTS.NO_ADJUSTMENT:
            SafetySupervisor._push(
                alerts, f"Pediatric adjustment applied (factor: {adjustment_factor:.2f})", AlertSeverity.INFO)

        # 3. Protocol in use
        if pathology_id:
            try:
                pathology = store.get_pathology(pathology_id)
                SafetySupervisor._push(
                    alerts, f"Following protocol for: {pathology.name}", AlertSeverity.INFO)
            except UnknownPathologyError:
                logger.warning(f"Result references unknown pathology '{pathology_id}'")

        # 4. Aggregate
        total = sum(m.adjusted_amount for m in muscles)

        # 5. Session ceiling
        limit = store.get_session_limit(brand)
        if total > limit:
            SafetySupervisor._push(alerts, session_limit_message(total, brand, limit), AlertSeverity.WARNING)
            logger.info(f"Session limit exceeded for {brand.value}: {total}U > {limit}U")

        # Optional: per-muscle ceiling (clinical decision pending, off by default)
        if settings.enforce_muscle_ceiling:
            for muscle in muscles:
                try:
                    reference_max = store.get_dose_range(brand, muscle.name).max_units
                except ReferenceNotFound:
                    continue
                ceiling = round_units(reference_max * settings.muscle_ceiling_multiplier)
                if muscle.adjusted_amount > ceiling:
                    SafetySupervisor._push(
                        alerts,
                        f"{muscle.name} dose ({muscle.adjusted_amount}U) exceeds per-muscle ceiling ({ceiling}U)",
                        AlertSeverity.ERROR,
                    )

        # 6. Snapshot
        return CalculationResult(
            total_dose=total,
            muscles_list=muscles,
            brand=brand,
            patient=patient,
            alerts=alerts,
            pathology_id=pathology_id,
            adjustment_factor=adjustment_factor,
        )
