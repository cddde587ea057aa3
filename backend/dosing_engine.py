"""
ToxinFlow: Core Dosing Engine
=============================
Translates (brand, selection, patient, protocol) into per-muscle adjusted
doses and a CalculationResult snapshot.

Every entry point is synchronous and pure over the reference tables. Session
state (MuscleSelection / DosingSession) is owned by the caller; nothing here
is shared between sessions except the read-only ReferenceDataStore.
"""

import logging
from typing import Iterable, List, Optional, Union

from config import EngineSettings
from constants import DosageTier, ToxinBrand, PEDIATRIC_CONSTANTS, AgeBand, round_units
from models import (
    CalculationResult, Patient, SelectedMuscle, ReferenceNotFound,
)
from protocols import ProtocolApplier
from reference_data import ReferenceDataStore, load_reference_data
from safety import SafetySupervisor

logger = logging.getLogger(__name__)

def _parse_tier(value: Union[DosageTier, str]) -> DosageTier:
    if isinstance(value, DosageTier):
        return value
    try:
        return DosageTier(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Dosage tier must be 'min' or 'max', got {value!r}") from None

class ToxinDosageEngine:
    """
    The Mathematical Core.
    Patient -> Adjustment Factor -> Adjusted Selection -> Result.
    """

    @staticmethod
    def _select_age_band(age_years: int) -> AgeBand:
        for band in PEDIATRIC_CONSTANTS.AGE_BANDS:
            if band.contains(age_years):
                return band
        raise ValueError(f"No pediatric age band covers age {age_years}")

    @staticmethod
    def adjustment_factor(age_years: Optional[int], weight_kg: Optional[float]) -> float:
        """
        Dimensionless dose multiplier in (0, 1].
        Adults, or patients missing age or weight, are not adjusted (1.0).
        Children: weight / band divisor, clamped to the band's [min, max].
        """
        Patient(weight_kg=weight_kg, age_years=age_years)  # raises InvalidPatientData
        if age_years is None or weight_kg is None:
            return PEDIATRIC_CONSTANTS.NO_ADJUSTMENT
        if age_years >= PEDIATRIC_CONSTANTS.ADULT_AGE_YEARS:
            return PEDIATRIC_CONSTANTS.NO_ADJUSTMENT

        band = ToxinDosageEngine._select_age_band(age_years)
        raw = weight_kg / band.weight_reference_divisor
        return max(band.min_factor, min(raw, band.max_factor))

    @staticmethod
    def patient_factor(patient: Optional[Patient]) -> float:
        if patient is None:
            return PEDIATRIC_CONSTANTS.NO_ADJUSTMENT
        patient.validate()
        return ToxinDosageEngine.adjustment_factor(patient.age_years, patient.weight_kg)

    @staticmethod
    def compute_session(brand: Union[ToxinBrand, str],
                        selected_muscles: Iterable,
                        patient: Optional[Patient] = None,
                        pathology_id: Optional[str] = None,
                        store: Optional[ReferenceDataStore] = None,
                        settings: Optional[EngineSettings] = None) -> CalculationResult:
        """
        MASTER ENTRY POINT: call after every state change.
        `selected_muscles` holds SelectedMuscle objects or (name, tier) pairs;
        base amounts are always re-read from the reference table.
        Raises InvalidPatientData / UnknownBrandError / UnknownPathologyError
        before anything is computed.
        """
        store = store or load_reference_data()
        brand = ToxinBrand.parse(brand)
        patient = patient if patient is not None else Patient()
        factor = ToxinDosageEngine.patient_factor(patient)
        if pathology_id:
            store.get_pathology(pathology_id)

        selection = MuscleSelection(brand, store=store, adjustment_factor=factor)
        for item in selected_muscles:
            if isinstance(item, SelectedMuscle):
                selection.add_muscle(item.name, item.dosage_type)
            else:
                name, tier = item
                selection.add_muscle(name, tier)

        logger.debug(f"compute_session {brand.value}: {len(selection)} muscles, factor={factor:.4f}")
        return SafetySupervisor.evaluate(
            brand=brand,
            selected_muscles=selection.muscles,
            patient=patient,
            pathology_id=pathology_id,
            adjustment_factor=factor,
            store=store,
            settings=settings,
        )

class MuscleSelection:
    """
    Ordered, duplicate-free set of muscles for one brand.
    adjusted_amount is kept in step with the last factor given to recompute_all.
    """

    def __init__(self, brand: ToxinBrand, store: Optional[ReferenceDataStore] = None,
                 adjustment_factor: float = PEDIATRIC_CONSTANTS.NO_ADJUSTMENT):
        self.brand = ToxinBrand.parse(brand)
        self.store = store or load_reference_data()
        self.adjustment_factor = adjustment_factor
        self._muscles: List[SelectedMuscle] = []

    @property
    def muscles(self) -> List[SelectedMuscle]:
        """Copies; mutating them does not touch the selection."""
        return [SelectedMuscle(m.name, m.dosage_type, m.base_amount, m.adjusted_amount)
                for m in self._muscles]

    def __len__(self):
        return len(self._muscles)

    def __contains__(self, name) -> bool:
        return any(m.name == name for m in self._muscles)

    def _find(self, name: str) -> Optional[SelectedMuscle]:
        for m in self._muscles:
            if m.name == name:
                return m
        return None

    def add_muscle(self, name: str, dosage_type: Union[DosageTier, str] = DosageTier.MIN) -> bool:
        """No-op (returns False) if already selected or not in the brand's table."""
        tier = _parse_tier(dosage_type)
        if name in self:
            return False
        try:
            dose_range = self.store.get_dose_range(self.brand, name)
        except ReferenceNotFound:
            logger.debug(f"Skipping {name!r}: no {self.brand.value} reference dose")
            return False

        base = dose_range.units_for(tier)
        self._muscles.append(SelectedMuscle(
            name=name,
            dosage_type=tier,
            base_amount=base,
            adjusted_amount=round_units(base * self.adjustment_factor),
        ))
        return True

    def remove_muscle(self, name: str) -> bool:
        before = len(self._muscles)
        self._muscles = [m for m in self._muscles if m.name != name]
        return len(self._muscles) != before

    def toggle_dosage_tier(self, name: str) -> bool:
        muscle = self._find(name)
        if muscle is None:
            return False
        try:
            dose_range = self.store.get_dose_range(self.brand, name)
        except ReferenceNotFound:
            return False
        muscle.dosage_type = muscle.dosage_type.toggled()
        muscle.base_amount = dose_range.units_for(muscle.dosage_type)
        muscle.adjusted_amount = round_units(muscle.base_amount * self.adjustment_factor)
        return True

    def recompute_all(self, adjustment_factor: float) -> None:
        self.adjustment_factor = adjustment_factor
        for m in self._muscles:
            m.adjusted_amount = round_units(m.base_amount * adjustment_factor)

    def replace_all(self, muscles: Iterable[SelectedMuscle]) -> None:
        """Wholesale replacement (protocol application); duplicates keep the first."""
        self._muscles = []
        for m in muscles:
            if m.name not in self:
                self._muscles.append(SelectedMuscle(m.name, m.dosage_type, m.base_amount, m.adjusted_amount))

    def clear(self) -> None:
        self._muscles = []

class DosingSession:
    """
    Explicit, caller-owned calculator state: brand, protocol, patient and
    selection. One instance per user session; never share between threads.
    """

    def __init__(self, store: Optional[ReferenceDataStore] = None,
                 settings: Optional[EngineSettings] = None):
        self.store = store or load_reference_data()
        self.settings = settings or EngineSettings()
        self.brand: Optional[ToxinBrand] = None
        self.pathology_id: Optional[str] = None
        self.patient = Patient()
        self.selection: Optional[MuscleSelection] = None

    @property
    def adjustment_factor(self) -> float:
        return ToxinDosageEngine.patient_factor(self.patient)

    @property
    def muscles(self) -> List[SelectedMuscle]:
        return self.selection.muscles if self.selection else []

    def select_brand(self, brand: Union[ToxinBrand, str]) -> None:
        brand = ToxinBrand.parse(brand)
        if brand is self.brand:
            return
        # Tables differ per brand: drop protocol and selection
        self.brand = brand
        self.pathology_id = None
        self.selection = MuscleSelection(brand, store=self.store, adjustment_factor=self.adjustment_factor)

    def select_pathology(self, pathology_id: Optional[str]) -> None:
        if pathology_id:
            self.store.get_pathology(pathology_id)
        if pathology_id != self.pathology_id and self.selection is not None:
            self.selection.clear()
        self.pathology_id = pathology_id

    def apply_protocol(self) -> List[SelectedMuscle]:
        if self.brand is None or not self.pathology_id:
            return []
        muscles = ProtocolApplier.apply_protocol(
            self.pathology_id, self.brand, self.adjustment_factor, self.store)
        self.selection.replace_all(muscles)
        return self.selection.muscles

    def update_patient(self, patient: Patient) -> None:
        patient.validate()
        self.patient = patient
        if self.selection is not None:
            self.selection.recompute_all(self.adjustment_factor)

    def add_muscle(self, name: str, dosage_type: Union[DosageTier, str] = DosageTier.MIN) -> bool:
        if self.selection is None:
            return False
        return self.selection.add_muscle(name, dosage_type)

    def remove_muscle(self, name: str) -> bool:
        if self.selection is None:
            return False
        return self.selection.remove_muscle(name)

    def toggle_dosage_tier(self, name: str) -> bool:
        if self.selection is None:
            return False
        return self.selection.toggle_dosage_tier(name)

    def calculate(self) -> CalculationResult:
        if self.brand is None:
            raise ValueError("Select a toxin brand before calculating")
        return ToxinDosageEngine.compute_session(
            self.brand, self.muscles, self.patient, self.pathology_id,
            store=self.store, settings=self.settings,
        )

    def reset(self) -> None:
        self.brand = None
        self.pathology_id = None
        self.patient = Patient()
        self.selection = None
