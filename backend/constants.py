import math
from enum import Enum
from dataclasses import dataclass
VERSION = "1.0.0"

class ToxinBrand(Enum):
    BOTOX = "Botox"       # onabotulinumtoxinA
    DYSPORT = "Dysport"   # abobotulinumtoxinA
    XEOMIN = "Xeomin"     # incobotulinumtoxinA

    @classmethod
    def parse(cls, value) -> "ToxinBrand":
        """Accepts an enum member or its display name ("botox" works too)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for brand in cls:
                if brand.value.lower() == value.strip().lower():
                    return brand
        # Local import: models depends on this module
        from models import UnknownBrandError
        raise UnknownBrandError(f"Unknown toxin brand: {value!r}")

class DosageTier(Enum):
    MIN = "min"
    MAX = "max"

    def toggled(self) -> "DosageTier":
        return DosageTier.MAX if self is DosageTier.MIN else DosageTier.MIN

@dataclass(frozen=True)
class MuscleDoseRange:
    min_units: int
    max_units: int

    def __post_init__(self):
        for value in (self.min_units, self.max_units):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"Dose bounds must be positive integers, got {value!r}")
        if self.min_units > self.max_units:
            raise ValueError(f"Invalid range: min {self.min_units} > max {self.max_units}")

    def units_for(self, tier: DosageTier) -> int:
        return self.min_units if tier is DosageTier.MIN else self.max_units

@dataclass(frozen=True)
class AgeBand:
    lower_years: int            # inclusive
    upper_years: int            # exclusive
    weight_reference_divisor: float
    min_factor: float
    max_factor: float

    def contains(self, age_years: int) -> bool:
        return self.lower_years <= age_years < self.upper_years

class PEDIATRIC_CONSTANTS:
    ADULT_AGE_YEARS = 18
    NO_ADJUSTMENT = 1.0

    # Younger bands scale more conservatively; the last band tops out at 1.0
    AGE_BANDS = (
        AgeBand(0, 2, weight_reference_divisor=60.0, min_factor=0.30, max_factor=0.50),
        AgeBand(2, 6, weight_reference_divisor=55.0, min_factor=0.50, max_factor=0.70),
        AgeBand(6, 12, weight_reference_divisor=50.0, min_factor=0.60, max_factor=0.85),
        AgeBand(12, 18, weight_reference_divisor=50.0, min_factor=0.75, max_factor=1.00),
    )

class SAFETY_CONSTANTS:
    # Maximum total units per treatment session
    SESSION_LIMITS_UNITS = {
        ToxinBrand.BOTOX: 400,
        ToxinBrand.DYSPORT: 1000,
        ToxinBrand.XEOMIN: 400,
    }
    MUSCLE_CEILING_MULTIPLIER = 1.2  # x reference max, only when enforced

class CONVERSION_CONSTANTS:
    # Units of each brand equivalent to 1 Botox unit
    BOTOX_EQUIVALENT_UNITS = {
        ToxinBrand.BOTOX: 1.0,
        ToxinBrand.DYSPORT: 2.5,
        ToxinBrand.XEOMIN: 1.0,
    }

def _dose_table(entries: dict) -> dict:
    return {name: MuscleDoseRange(lo, hi) for name, (lo, hi) in entries.items()}

class TOXIN_LIBRARY:
    """
    Reference dose ranges (units) per brand and muscle.
    Tables are brand-specific and are never converted between brands here.
    """
    SPECS = {
        ToxinBrand.DYSPORT: _dose_table({
            "Abductor hallucis": (40, 80),
            "Adductor longus": (200, 400),
            "Adductor magnus": (400, 750),
            "Adductor pollicis longus": (80, 120),
            "Biceps brachii": (100, 300),
            "Biceps femoris": (400, 500),
            "Brachialis": (200, 400),
            "Brachioradialis": (200, 240),
            "Coracobrachialis": (120, 200),
            "Cuadrado lumbar": (400, 400),
            "Deltoides": (200, 300),
            "Dorsal ancho": (240, 320),
            "Extensor carpi radialis brevis": (75, 120),
            "Extensor carpi radialis longus": (120, 160),
            "Extensor carpi ulnaris": (120, 160),
            "Extensor digiti minimi": (120, 160),
            "Extensor digitorum communis": (120, 160),
            "Extensor digitorum longus": (200, 300),
            "Extensor hallucis longus": (200, 250),
            "Extensor indicis": (75, 120),
            "Extensor pollicis brevis": (75, 100),
            "Extensor pollicis longus": (75, 120),
            "Flexor carpi radialis": (120, 160),
            "Flexor carpi ulnaris": (120, 160),
            "Flexor digitorum brevis": (40, 80),
            "Flexor digitorum longus": (160, 240),
            "Flexor digitorum profundus": (120, 160),
            "Flexor digitorum superficialis": (100, 120),
            "Flexor hallucis brevis": (40, 80),
            "Flexor hallucis longus": (160, 240),
            "Flexor pollicis longus": (75, 120),
            "Gastrocnemio (cabeza lateral)": (200, 400),
            "Gastrocnemio (cabeza medial)": (200, 400),
            "Glúteo medio": (240, 300),
            "Gracilis": (300, 400),
            "Ilíaco": (200, 400),
            "Infraespinoso": (200, 240),
            "Pectineus": (200, 400),
            "Pectoral mayor": (300, 400),
            "Pectoralis minor": (160, 160),
            "Peroneus brevis": (120, 160),
            "Peroneus longus": (200, 320),
            "Peroneus tertius": (120, 150),
            "Popliteus": (100, 120),
            "Pronator quadratus": (75, 120),
            "Pronator teres": (120, 160),
            "Psoas mayor": (600, 800),
            "Rectus femoris": (400, 500),
            "Redondo mayor": (120, 200),
            "Redondo menor": (120, 200),
            "Romboides": (200, 240),
            "Semimembranosus": (400, 500),
            "Semitendinosus": (400, 500),
            "Serrato anterior": (250, 275),
            "Sóleo": (300, 400),
            "Subscapularis": (200, 320),
            "Supinador": (120, 160),
            "Supraespinoso": (160, 200),
            "Tibialis anterior": (300, 400),
            "Tibialis posterior": (200, 320),
            "Trapecio": (200, 300),
            "Triceps brachii": (300, 400),
            "Vastus lateralis": (400, 500),
            "Vastus medialis": (400, 500),
        }),
        ToxinBrand.BOTOX: _dose_table({
            "Abductor hallucis": (10, 20),
            "Adductor longus": (50, 100),
            "Adductor magnus": (100, 200),
            "Adductor pollicis longus": (20, 40),
            "Biceps brachii": (75, 100),
            "Biceps femoris": (100, 150),
            "Brachialis": (50, 75),
            "Brachioradialis": (50, 60),
            "Coracobrachialis": (30, 50),
            "Cuadrado lumbar": (100, 100),
            "Deltoides": (50, 75),
            "Dorsal ancho": (60, 80),
            "Extensor carpi radialis brevis": (20, 30),
            "Extensor carpi radialis longus": (30, 40),
            "Extensor carpi ulnaris": (30, 40),
            "Extensor digiti minimi": (30, 40),
            "Extensor digitorum communis": (30, 40),
            "Extensor digitorum longus": (50, 75),
            "Extensor hallucis longus": (50, 60),
            "Extensor indicis": (20, 30),
            "Extensor pollicis brevis": (20, 25),
            "Extensor pollicis longus": (20, 30),
            "Flexor carpi radialis": (30, 40),
            "Flexor carpi ulnaris": (30, 40),
            "Flexor digitorum brevis": (10, 20),
            "Flexor digitorum longus": (40, 60),
            "Flexor digitorum profundus": (30, 40),
            "Flexor digitorum superficialis": (25, 30),
            "Flexor hallucis brevis": (10, 20),
            "Flexor hallucis longus": (40, 60),
            "Flexor pollicis longus": (20, 30),
            "Frontalis": (10, 20),
            "Gastrocnemio (cabeza lateral)": (50, 100),
            "Gastrocnemio (cabeza medial)": (50, 100),
            "Glúteo medio": (60, 75),
            "Gracilis": (80, 120),
            "Ilíaco": (75, 150),
            "Infraespinoso": (50, 60),
            "Pectineus": (50, 100),
            "Pectoral mayor": (75, 100),
            "Pectoralis minor": (40, 40),
            "Peroneus brevis": (30, 40),
            "Peroneus longus": (50, 80),
            "Peroneus tertius": (30, 40),
            "Popliteus": (25, 30),
            "Pronator quadratus": (20, 30),
            "Pronator teres": (30, 40),
            "Psoas mayor": (100, 200),
            "Rectus femoris": (100, 150),
            "Redondo mayor": (30, 50),
            "Redondo menor": (30, 50),
            "Romboides": (50, 60),
            "Semimembranosus": (100, 150),
            "Semitendinosus": (100, 150),
            "Serrato anterior": (60, 70),
            "Sóleo": (75, 100),
            "Subscapularis": (50, 80),
            "Supinador": (30, 40),
            "Supraespinoso": (50, 60),
            "Tibialis anterior": (75, 120),
            "Tibialis posterior": (50, 80),
            "Trapecio": (50, 75),
            "Triceps brachii": (75, 100),
            "Vastus lateralis": (100, 150),
            "Vastus medialis": (100, 150),
        }),
        ToxinBrand.XEOMIN: _dose_table({
            "Abductor hallucis": (10, 20),
            "Adductor longus": (50, 100),
            "Adductor magnus": (100, 200),
            "Adductor pollicis longus": (20, 40),
            "Biceps brachii": (75, 100),
            "Biceps femoris": (100, 150),
            "Brachialis": (50, 75),
            "Brachioradialis": (50, 60),
            "Coracobrachialis": (30, 50),
            "Cuadrado lumbar": (100, 100),
            "Deltoides": (20, 150),
            "Dorsal ancho": (25, 150),
            "Extensor carpi radialis brevis": (20, 30),
            "Extensor carpi radialis longus": (30, 40),
            "Extensor carpi ulnaris": (30, 40),
            "Extensor digiti minimi": (30, 40),
            "Extensor digitorum communis": (30, 40),
            "Extensor digitorum longus": (50, 80),
            "Extensor hallucis longus": (50, 60),
            "Extensor indicis": (20, 30),
            "Extensor pollicis brevis": (20, 25),
            "Extensor pollicis longus": (20, 30),
            "Flexor carpi radialis": (30, 40),
            "Flexor carpi ulnaris": (30, 40),
            "Flexor digitorum brevis": (10, 20),
            "Flexor digitorum longus": (40, 60),
            "Flexor digitorum profundus": (30, 40),
            "Flexor digitorum superficialis": (25, 30),
            "Flexor hallucis brevis": (10, 20),
            "Flexor hallucis longus": (40, 60),
            "Flexor pollicis longus": (20, 30),
            "Frontalis": (10, 20),
            "Gastrocnemio (cabeza lateral)": (50, 100),
            "Gastrocnemio (cabeza medial)": (50, 100),
            "Glúteo medio": (60, 75),
            "Gracilis": (80, 120),
            "Ilíaco": (75, 150),
            "Infraespinoso": (50, 60),
            "Pectineus": (50, 100),
            "Pectoral mayor": (20, 200),
            "Pectoralis minor": (40, 40),
            "Peroneus brevis": (30, 40),
            "Peroneus longus": (50, 80),
            "Peroneus tertius": (30, 40),
            "Popliteus": (25, 30),
            "Pronator quadratus": (20, 30),
            "Pronator teres": (30, 40),
            "Psoas mayor": (100, 200),
            "Rectus femoris": (100, 150),
            "Redondo mayor": (20, 100),
            "Redondo menor": (20, 100),
            "Romboides": (50, 60),
            "Semimembranosus": (100, 150),
            "Semitendinosus": (100, 150),
            "Serrato anterior": (50, 100),
            "Sóleo": (75, 200),
            "Subscapularis": (15, 100),
            "Supinador": (30, 40),
            "Supraespinoso": (50, 60),
            "Tibialis anterior": (75, 120),
            "Tibialis posterior": (50, 100),
            "Trapecio": (50, 75),
            "Triceps brachii": (75, 100),
            "Vastus lateralis": (100, 150),
            "Vastus medialis": (100, 150),
        }),
    }

    @staticmethod
    def get(brand: ToxinBrand) -> dict:
        return TOXIN_LIBRARY.SPECS.get(brand, {})

def round_units(value: float) -> int:
    """Half-up rounding to whole units (12.5 -> 13)."""
    return int(math.floor(value + 0.5))
