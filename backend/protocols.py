# protocols.py
import logging
from typing import List

from constants import ToxinBrand, DosageTier, round_units
from models import (
    MuscleRecommendation, Pathology, RecommendationPriority, SelectedMuscle,
    ReferenceNotFound,
)

logger = logging.getLogger(__name__)

PRIMARY = RecommendationPriority.PRIMARY
SECONDARY = RecommendationPriority.SECONDARY
MIN = DosageTier.MIN
MAX = DosageTier.MAX

def _for_all_brands(*entries) -> dict:
    """Protocols are authored brand-agnostic; availability is filtered per brand at apply time."""
    recs = tuple(MuscleRecommendation(name, priority, tier) for name, priority, tier in entries)
    return {brand: recs for brand in ToxinBrand}

class PATHOLOGY_LIBRARY:
    """
    Recommended-muscle protocols per clinical indication.
    Some referenced muscles/regions have no dose range for any brand (e.g.
    'Orbicularis oculi'); they are dropped when the protocol is applied.
    """
    SPECS = (
        Pathology(
            id="cervical_dystonia",
            name="Cervical Dystonia",
            description="Involuntary contraction of neck muscles causing abnormal head positioning",
            recommended_muscles=_for_all_brands(
                ("Trapecio", PRIMARY, MAX),
                ("Deltoides", SECONDARY, MIN),
                ("Infraespinoso", SECONDARY, MIN),
            ),
        ),
        Pathology(
            id="upper_limb_spasticity",
            name="Upper Limb Spasticity",
            description="Increased muscle tone in the upper limbs resulting from neurological conditions",
            recommended_muscles=_for_all_brands(
                ("Biceps brachii", PRIMARY, MAX),
                ("Flexor carpi radialis", PRIMARY, MAX),
                ("Flexor carpi ulnaris", PRIMARY, MAX),
                ("Pronator teres", SECONDARY, MIN),
                ("Flexor digitorum profundus", SECONDARY, MIN),
                ("Flexor digitorum superficialis", SECONDARY, MIN),
            ),
        ),
        Pathology(
            id="lower_limb_spasticity",
            name="Lower Limb Spasticity",
            description="Increased muscle tone in the lower limbs affecting gait and motor function",
            recommended_muscles=_for_all_brands(
                ("Gastrocnemio (cabeza lateral)", PRIMARY, MAX),
                ("Gastrocnemio (cabeza medial)", PRIMARY, MAX),
                ("Sóleo", PRIMARY, MAX),
                ("Tibialis posterior", SECONDARY, MIN),
                ("Flexor digitorum longus", SECONDARY, MIN),
            ),
        ),
        Pathology(
            id="blepharospasm",
            name="Blepharospasm",
            description="Involuntary eyelid spasms and contractions that may lead to functional blindness",
            recommended_muscles=_for_all_brands(
                ("Orbicularis oculi", PRIMARY, MIN),
            ),
        ),
        Pathology(
            id="hyperhidrosis",
            name="Hyperhidrosis",
            description="Excessive sweating, typically in the armpits, palms, and soles",
            recommended_muscles=_for_all_brands(
                ("Axillary region", PRIMARY, MIN),
            ),
        ),
        Pathology(
            id="chronic_migraine",
            name="Chronic Migraine",
            description="Headache occurring at least 15 days per month, with at least 8 days of migraine features",
            recommended_muscles=_for_all_brands(
                ("Frontalis", PRIMARY, MIN),
                ("Corrugator", PRIMARY, MIN),
                ("Procerus", PRIMARY, MIN),
                ("Occipitalis", PRIMARY, MIN),
                ("Trapecio", SECONDARY, MIN),
            ),
        ),
        Pathology(
            id="masseter_hypertrophy",
            name="Masseter Hypertrophy",
            description="Enlargement of the masseter muscle, often for aesthetic facial slimming",
            recommended_muscles=_for_all_brands(
                ("Masseter", PRIMARY, MIN),
            ),
        ),
        Pathology(
            id="gummy_smile",
            name="Gummy Smile",
            description="Excessive gingival display when smiling, can be treated with toxin to reduce muscle elevation",
            recommended_muscles=_for_all_brands(
                ("Levator labii superioris alaeque nasi", PRIMARY, MIN),
            ),
        ),
    )

class ProtocolApplier:
    @staticmethod
    def apply_protocol(pathology_id: str, brand: ToxinBrand, adjustment_factor: float,
                       store) -> List[SelectedMuscle]:
        """
        Turns a pathology protocol into a complete muscle selection.
        The result REPLACES any previous selection; it is never merged.
        Recommended muscles missing from the brand's dose table are skipped.
        """
        pathology = store.get_pathology(pathology_id)
        recommendations = pathology.recommendations_for(brand)
        if not recommendations:
            logger.warning(f"Protocol '{pathology_id}' has no recommendations for {brand.value}")
            return []

        muscles: List[SelectedMuscle] = []
        skipped: List[str] = []
        for rec in recommendations:
            try:
                dose_range = store.get_dose_range(brand, rec.muscle_name)
            except ReferenceNotFound:
                skipped.append(rec.muscle_name)
                continue

            base_amount = dose_range.units_for(rec.recommended_dosage)
            muscles.append(SelectedMuscle(
                name=rec.muscle_name,
                dosage_type=rec.recommended_dosage,
                base_amount=base_amount,
                adjusted_amount=round_units(base_amount * adjustment_factor),
            ))

        if skipped:
            logger.info(f"Protocol '{pathology_id}': not available for {brand.value}: {', '.join(skipped)}")
        logger.info(f"Applied protocol '{pathology_id}' for {brand.value}: {len(muscles)} muscles")
        return muscles

    @staticmethod
    def recommendations(pathology_id: str, brand: ToxinBrand, store) -> List[dict]:
        """
        Lists a protocol's recommendations for display, primary muscles first,
        each flagged with whether the brand's table can dose it.
        """
        pathology = store.get_pathology(pathology_id)
        rows = []
        for rec in pathology.recommendations_for(brand):
            rows.append({
                "muscle_name": rec.muscle_name,
                "priority": rec.priority.value,
                "recommended_dosage": rec.recommended_dosage.value,
                "available": store.has_muscle(brand, rec.muscle_name),
            })
        # Stable sort keeps authoring order inside each priority group
        rows.sort(key=lambda r: 0 if r["priority"] == PRIMARY.value else 1)
        return rows
