"""
지속가능성 API — 탄소 배출 / 재활용 / 자재 흐름 기록
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.common import (
    ApiResponse, MessageResponse, SearchRequest, SearchResponse, search_response,
)
from app.schemas.sustainability import (
    CarbonCreate, CarbonResponse, CarbonUpdate,
    MaterialFlowCreate, MaterialFlowResponse, MaterialFlowUpdate,
    RecyclingCreate, RecyclingResponse, RecyclingUpdate,
)
from app.services import SustainabilityService

router = APIRouter(prefix="/api/sustainability", tags=["sustainability"])


# ── 탄소 배출 ────────────────────────────────────────

@router.post("/carbon/search", response_model=SearchResponse[CarbonResponse])
def search_carbon(body: SearchRequest, db: Session = Depends(get_db)):
    page = SustainabilityService(db).search_carbon(body.to_params())
    return search_response(page, CarbonResponse)


@router.get("/carbon/{record_id}", response_model=ApiResponse[CarbonResponse])
def get_carbon(record_id: int, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).get_carbon(record_id)}


@router.post("/carbon", response_model=ApiResponse[CarbonResponse], status_code=201)
def create_carbon(body: CarbonCreate, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).create_carbon(body.model_dump())}


@router.put("/carbon/{record_id}", response_model=ApiResponse[CarbonResponse])
def update_carbon(record_id: int, body: CarbonUpdate, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).update_carbon(record_id, body.model_dump(exclude_unset=True))}


@router.delete("/carbon/{record_id}", response_model=ApiResponse[MessageResponse])
def delete_carbon(record_id: int, db: Session = Depends(get_db)):
    SustainabilityService(db).delete_carbon(record_id)
    return {"data": {"message": "Carbon tracking record deleted successfully"}}


# ── 재활용 ────────────────────────────────────────────

@router.post("/recycling/search", response_model=SearchResponse[RecyclingResponse])
def search_recycling(body: SearchRequest, db: Session = Depends(get_db)):
    page = SustainabilityService(db).search_recycling(body.to_params())
    return search_response(page, RecyclingResponse)


@router.get("/recycling/{record_id}", response_model=ApiResponse[RecyclingResponse])
def get_recycling(record_id: int, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).get_recycling(record_id)}


@router.post("/recycling", response_model=ApiResponse[RecyclingResponse], status_code=201)
def create_recycling(body: RecyclingCreate, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).create_recycling(body.model_dump())}


@router.put("/recycling/{record_id}", response_model=ApiResponse[RecyclingResponse])
def update_recycling(record_id: int, body: RecyclingUpdate, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).update_recycling(record_id, body.model_dump(exclude_unset=True))}


@router.delete("/recycling/{record_id}", response_model=ApiResponse[MessageResponse])
def delete_recycling(record_id: int, db: Session = Depends(get_db)):
    SustainabilityService(db).delete_recycling(record_id)
    return {"data": {"message": "Recycling record deleted successfully"}}


# ── 자재 흐름 ────────────────────────────────────────

@router.post("/material-flows/search", response_model=SearchResponse[MaterialFlowResponse])
def search_material_flows(body: SearchRequest, db: Session = Depends(get_db)):
    page = SustainabilityService(db).search_flows(body.to_params())
    return search_response(page, MaterialFlowResponse)


@router.get("/material-flows/{flow_id}", response_model=ApiResponse[MaterialFlowResponse])
def get_material_flow(flow_id: int, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).get_flow(flow_id)}


@router.post("/material-flows", response_model=ApiResponse[MaterialFlowResponse], status_code=201)
def create_material_flow(body: MaterialFlowCreate, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).create_flow(body.model_dump())}


@router.put("/material-flows/{flow_id}", response_model=ApiResponse[MaterialFlowResponse])
def update_material_flow(flow_id: int, body: MaterialFlowUpdate, db: Session = Depends(get_db)):
    return {"data": SustainabilityService(db).update_flow(flow_id, body.model_dump(exclude_unset=True))}


@router.delete("/material-flows/{flow_id}", response_model=ApiResponse[MessageResponse])
def delete_material_flow(flow_id: int, db: Session = Depends(get_db)):
    SustainabilityService(db).delete_flow(flow_id)
    return {"data": {"message": "Material flow record deleted successfully"}}
