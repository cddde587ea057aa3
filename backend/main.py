# main.py

import logging
from typing import Optional, List
from datetime import datetime
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

# Import Data Models & Logic
from config import EngineSettings
from constants import VERSION, DosageTier, ToxinBrand
from conversion import conversion_ratio, convert_units
from dosing_engine import ToxinDosageEngine
from history import CalculationHistory
from models import (
    CalculationResult,
    Patient,
    UnknownPathologyError,
)
from protocols import ProtocolApplier
from reference_data import load_reference_data

# --- 1. CONFIGURATION & LOGGING ---
settings = EngineSettings.from_env()
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger("toxinflow-api")

store = load_reference_data()
history = CalculationHistory(limit=settings.history_limit)

app = FastAPI(
    title="ToxinFlow API",
    version=VERSION,
    description="Botulinum toxin dosing reference calculator. \n\n"
                "**WARNING**: Decision Support Tool Only. Final dose is the treating physician's responsibility.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def read_root():
    return {"status": "active", "message": "ToxinFlow API is running successfully!"}

@app.get("/health")
def health_check():
    """K8s/AWS Health Probe"""
    return {"status": "active", "version": VERSION, "module": "toxinflow-dosing-engine"}

# --- 2. STRICT INPUT SCHEMA ---
class PatientRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    weight_kg: Optional[float] = Field(None, gt=0.0, le=400.0, description="Weight in kg")
    age_years: Optional[int] = Field(None, ge=0, le=130, description="Age in whole years")

class MuscleRequest(BaseModel):
    name: str
    dosage_type: DosageTier = Field(default=DosageTier.MIN)

class CalculationRequest(BaseModel):
    # Auto-maps "Botox" -> ToxinBrand.BOTOX
    brand: ToxinBrand
    patient: Optional[PatientRequest] = None
    muscles: List[MuscleRequest] = Field(default_factory=list)
    pathology_id: Optional[str] = None
    # Replace `muscles` with the protocol's recommendations
    apply_protocol: bool = False
    save: bool = False

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "brand": "Botox",
            "patient": {"name": "Demo", "age_years": 5, "weight_kg": 18},
            "muscles": [{"name": "Frontalis", "dosage_type": "min"}],
        }
    })

class ConversionRequest(BaseModel):
    units: float = Field(..., ge=0.0)
    from_brand: ToxinBrand
    to_brand: ToxinBrand

# --- 3. EXPLICIT RESPONSE SCHEMA ---
class SelectedMuscleResponse(BaseModel):
    name: str
    dosage_type: str
    base_amount: int
    adjusted_amount: int

class AlertResponse(BaseModel):
    message: str
    severity: str

class CalculationResponse(BaseModel):
    total_dose: Optional[int]
    muscles_list: List[SelectedMuscleResponse]
    brand: str
    patient: dict
    alerts: List[AlertResponse]
    pathology_id: Optional[str] = None
    adjustment_factor: float
    timestamp: Optional[str] = None
    model_version: str
    generated_at: datetime = Field(default_factory=datetime.now)

def _to_response(result: CalculationResult) -> dict:
    return result.to_dict()

# --- 4. ENDPOINTS ---

@app.get("/brands")
def list_brands():
    return [
        {"brand": b.value, "session_limit_units": store.get_session_limit(b), "muscle_count": len(store.list_muscles(b))}
        for b in ToxinBrand
    ]

@app.get("/brands/{brand}/muscles")
def list_muscles(brand: str):
    try:
        toxin = ToxinBrand.parse(brand)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [
        {"name": name, "min": r.min_units, "max": r.max_units}
        for name, r in store.dose_table(toxin).items()
    ]

@app.get("/pathologies")
def list_pathologies(brand: Optional[ToxinBrand] = None):
    rows = []
    for p in store.list_pathologies():
        row = {"id": p.id, "name": p.name, "description": p.description}
        if brand is not None:
            row["recommendations"] = ProtocolApplier.recommendations(p.id, brand, store)
        rows.append(row)
    return rows

@app.post("/calculate", response_model=CalculationResponse)
def calculate(request: CalculationRequest):
    """
    Single composed call made by the host after every state change.
    """
    try:
        logger.info(f"Calculating {request.brand.value}: {len(request.muscles)} muscles, protocol={request.pathology_id}")

        patient = Patient(**request.patient.model_dump()) if request.patient else Patient()

        if request.apply_protocol:
            if not request.pathology_id:
                raise ValueError("apply_protocol requires pathology_id")
            factor = ToxinDosageEngine.patient_factor(patient)
            selected = ProtocolApplier.apply_protocol(request.pathology_id, request.brand, factor, store)
        else:
            selected = [(m.name, m.dosage_type) for m in request.muscles]

        result = ToxinDosageEngine.compute_session(
            request.brand, selected, patient, request.pathology_id,
            store=store, settings=settings,
        )
        if request.save and result.total_dose is not None:
            result = history.save(result)
        return _to_response(result)

    except UnknownPathologyError as e:
        logger.warning(f"Unknown protocol: {str(e)}")
        raise HTTPException(status_code=404, detail=str(e))

    except ValueError as e:
        # Patient validation / unsupported input
        logger.warning(f"Clinical Validation Error: {str(e)}")
        raise HTTPException(status_code=422, detail=f"Clinical Validation Error: {str(e)}")

    except Exception as e:
        logger.error(f"Internal Engine Failure: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Dosing Engine Error")

@app.post("/convert")
def convert(request: ConversionRequest):
    """Reference conversion between brands. Never applied to session totals."""
    return {
        "from_brand": request.from_brand.value,
        "to_brand": request.to_brand.value,
        "ratio": conversion_ratio(request.from_brand, request.to_brand),
        "units": convert_units(request.units, request.from_brand, request.to_brand),
    }

@app.get("/history", response_model=List[CalculationResponse])
def get_history():
    return [_to_response(r) for r in history.entries()]

@app.delete("/history")
def clear_history():
    history.clear()
    return {"status": "cleared"}
