"""
Sustainability Service — 탄소 배출, 재활용, 자재 흐름 기록 CRUD
"""

import logging
from datetime import datetime, timezone

from app.exceptions import NotFoundError, ServiceError
from app.models import CarbonTracking, MaterialFlow, Product, RecyclingRecord
from app.models.sustainability import (
    CarbonCategory, CarbonScope, FlowCategory, RecyclingMethod, RecyclingType,
)
from app.services.base import BaseService
from app.services.search import (
    Page, SearchParams, paginate, parse_datetime, parse_enum, parse_int,
    text_search,
)

logger = logging.getLogger(__name__)

CARBON_SORT = {
    "recordedAt": CarbonTracking.recorded_at,
    "carbonKg": CarbonTracking.carbon_kg,
    "measurementPeriod": CarbonTracking.measurement_period,
    "scope": CarbonTracking.scope,
}

RECYCLING_SORT = {
    "processedDate": RecyclingRecord.processed_date,
    "quantity": RecyclingRecord.quantity,
    "weightKg": RecyclingRecord.weight_kg,
    "carbonSavedKg": RecyclingRecord.carbon_saved_kg,
}

FLOW_SORT = {
    "flowDate": MaterialFlow.flow_date,
    "quantity": MaterialFlow.quantity,
    "materialType": MaterialFlow.material_type,
}


def _date_range(query, column, filters: dict):
    if filters.get("dateFrom"):
        query = query.filter(column >= parse_datetime(filters["dateFrom"], "dateFrom"))
    if filters.get("dateTo"):
        query = query.filter(column <= parse_datetime(filters["dateTo"], "dateTo"))
    return query


class SustainabilityService(BaseService):
    """지속가능성 기록 서비스"""

    # ── 탄소 배출 ────────────────────────────────────────

    def search_carbon(self, params: SearchParams) -> Page:
        query = text_search(
            self.db.query(CarbonTracking), params.search,
            CarbonTracking.source_type, CarbonTracking.notes, CarbonTracking.measurement_period,
        )
        filters = params.filters
        if filters.get("scope"):
            query = query.filter(CarbonTracking.scope == parse_enum(CarbonScope, filters["scope"], "scope"))
        if filters.get("category"):
            query = query.filter(
                CarbonTracking.category == parse_enum(CarbonCategory, filters["category"], "category")
            )
        if filters.get("sourceType"):
            query = query.filter(CarbonTracking.source_type == filters["sourceType"])
        if filters.get("sourceId"):
            query = query.filter(CarbonTracking.source_id == parse_int(filters["sourceId"], "sourceId"))
        if filters.get("measurementPeriod"):
            query = query.filter(CarbonTracking.measurement_period == filters["measurementPeriod"])
        query = _date_range(query, CarbonTracking.recorded_at, filters)
        return paginate(query, params, CARBON_SORT, ("recordedAt", "desc"))

    def get_carbon(self, record_id: int) -> CarbonTracking:
        return self._get_or_404(CarbonTracking, record_id, "Carbon tracking record not found")

    def create_carbon(self, data: dict) -> CarbonTracking:
        if not data.get("scope"):
            raise ServiceError("Scope is required")
        if not data.get("category"):
            raise ServiceError("Category is required")
        if data.get("carbon_kg") is None or data["carbon_kg"] < 0:
            raise ServiceError("Valid carbon kg is required")
        if not data.get("measurement_period"):
            raise ServiceError("Measurement period is required")

        with self.atomic():
            if data.get("source_id") and data.get("source_type") == "WAREHOUSE":
                self._require_warehouse(data["source_id"])
            record = CarbonTracking(
                scope=data["scope"],
                category=data["category"],
                carbon_kg=data["carbon_kg"],
                source_id=data.get("source_id"),
                source_type=data.get("source_type"),
                measurement_period=data["measurement_period"],
                calculation_method=data.get("calculation_method") or "ESTIMATED",
                notes=data.get("notes"),
                recorded_at=datetime.now(timezone.utc),
            )
            self.db.add(record)

        self.db.refresh(record)
        logger.info(
            f"탄소 배출 기록: {record.scope.value}/{record.category.value} "
            f"{record.carbon_kg}kg ({record.measurement_period})"
        )
        return record

    def update_carbon(self, record_id: int, data: dict) -> CarbonTracking:
        with self.atomic():
            record = self.get_carbon(record_id)
            if "carbon_kg" in data:
                if data["carbon_kg"] is None or data["carbon_kg"] < 0:
                    raise ServiceError("Valid carbon kg is required")
                record.carbon_kg = data["carbon_kg"]
            if data.get("calculation_method"):
                record.calculation_method = data["calculation_method"]
            if "notes" in data:
                record.notes = data["notes"]
        self.db.refresh(record)
        return record

    def delete_carbon(self, record_id: int) -> None:
        with self.atomic():
            self.db.delete(self.get_carbon(record_id))
        logger.info(f"탄소 배출 기록 삭제: #{record_id}")

    # ── 재활용 ────────────────────────────────────────────

    def search_recycling(self, params: SearchParams) -> Page:
        query = self.db.query(RecyclingRecord).join(
            Product, RecyclingRecord.product_id == Product.id
        )
        query = text_search(query, params.search, Product.name, Product.sku)
        filters = params.filters
        if filters.get("processingWarehouseId"):
            query = query.filter(
                RecyclingRecord.processing_warehouse_id
                == parse_int(filters["processingWarehouseId"], "processingWarehouseId")
            )
        if filters.get("productId"):
            query = query.filter(RecyclingRecord.product_id == parse_int(filters["productId"], "productId"))
        if filters.get("recyclingType"):
            query = query.filter(
                RecyclingRecord.recycling_type
                == parse_enum(RecyclingType, filters["recyclingType"], "recyclingType")
            )
        if filters.get("method"):
            query = query.filter(
                RecyclingRecord.method == parse_enum(RecyclingMethod, filters["method"], "method")
            )
        if filters.get("processedById"):
            query = query.filter(RecyclingRecord.processed_by_id == parse_int(filters["processedById"], "processedById"))
        query = _date_range(query, RecyclingRecord.processed_date, filters)
        return paginate(query, params, RECYCLING_SORT, ("processedDate", "desc"))

    def get_recycling(self, record_id: int) -> RecyclingRecord:
        return self._get_or_404(RecyclingRecord, record_id, "Recycling record not found")

    def create_recycling(self, data: dict) -> RecyclingRecord:
        if not data.get("processing_warehouse_id"):
            raise ServiceError("Processing warehouse ID is required")
        if not data.get("product_id"):
            raise ServiceError("Product ID is required")
        if not data.get("quantity") or data["quantity"] < 0:
            raise ServiceError("Valid quantity is required")
        if not data.get("recycling_type"):
            raise ServiceError("Recycling type is required")
        if not data.get("method"):
            raise ServiceError("Method is required")
        if not data.get("processed_by_id"):
            raise ServiceError("Processed by user is required")

        with self.atomic():
            self._require_warehouse(data["processing_warehouse_id"], "Processing warehouse not found")
            product = self.db.get(Product, data["product_id"])
            if product is None:
                raise NotFoundError("Product not found")
            self._require_user(data["processed_by_id"])

            weight_kg = data.get("weight_kg") or data["quantity"] * (product.weight or 1)
            record = RecyclingRecord(
                processing_warehouse_id=data["processing_warehouse_id"],
                product_id=product.id,
                quantity=data["quantity"],
                weight_kg=weight_kg,
                recycling_type=data["recycling_type"],
                method=data["method"],
                carbon_saved_kg=data.get("carbon_saved_kg") or 0.0,
                landfill_diverted_kg=data.get("landfill_diverted_kg") or 0.0,
                processed_by_id=data["processed_by_id"],
                processed_date=datetime.now(timezone.utc),
            )
            self.db.add(record)

        self.db.refresh(record)
        logger.info(
            f"재활용 기록: {product.sku} {record.quantity}개 ({record.weight_kg}kg, "
            f"{record.recycling_type.value}/{record.method.value})"
        )
        return record

    def update_recycling(self, record_id: int, data: dict) -> RecyclingRecord:
        with self.atomic():
            record = self.get_recycling(record_id)
            if "quantity" in data:
                if not data["quantity"] or data["quantity"] < 0:
                    raise ServiceError("Valid quantity is required")
                record.quantity = data["quantity"]
            for field in ("weight_kg", "carbon_saved_kg", "landfill_diverted_kg"):
                if field in data and data[field] is not None:
                    setattr(record, field, data[field])
        self.db.refresh(record)
        return record

    def delete_recycling(self, record_id: int) -> None:
        with self.atomic():
            self.db.delete(self.get_recycling(record_id))
        logger.info(f"재활용 기록 삭제: #{record_id}")

    # ── 자재 흐름 ────────────────────────────────────────

    def search_flows(self, params: SearchParams) -> Page:
        query = text_search(
            self.db.query(MaterialFlow), params.search,
            MaterialFlow.material_type, MaterialFlow.source_type, MaterialFlow.dest_type,
        )
        filters = params.filters
        if filters.get("materialType"):
            query = query.filter(MaterialFlow.material_type == filters["materialType"])
        if filters.get("category"):
            query = query.filter(
                MaterialFlow.category == parse_enum(FlowCategory, filters["category"], "category")
            )
        if filters.get("sourceType"):
            query = query.filter(MaterialFlow.source_type == filters["sourceType"])
        if filters.get("sourceId"):
            query = query.filter(MaterialFlow.source_id == parse_int(filters["sourceId"], "sourceId"))
        if filters.get("destType"):
            query = query.filter(MaterialFlow.dest_type == filters["destType"])
        if filters.get("destId"):
            query = query.filter(MaterialFlow.dest_id == parse_int(filters["destId"], "destId"))
        query = _date_range(query, MaterialFlow.flow_date, filters)
        return paginate(query, params, FLOW_SORT, ("flowDate", "desc"))

    def get_flow(self, flow_id: int) -> MaterialFlow:
        return self._get_or_404(MaterialFlow, flow_id, "Material flow record not found")

    def create_flow(self, data: dict) -> MaterialFlow:
        if not data.get("material_type"):
            raise ServiceError("Material type is required")
        if not data.get("category"):
            raise ServiceError("Category is required")
        if not data.get("quantity") or data["quantity"] < 0:
            raise ServiceError("Valid quantity is required")
        if not data.get("unit"):
            raise ServiceError("Unit is required")

        with self.atomic():
            if data.get("source_id") and data.get("source_type") == "WAREHOUSE":
                self._require_warehouse(data["source_id"], "Source warehouse not found")
            if data.get("dest_id") and data.get("dest_type") == "WAREHOUSE":
                self._require_warehouse(data["dest_id"], "Destination warehouse not found")
            now = datetime.now(timezone.utc)
            flow = MaterialFlow(
                material_type=data["material_type"],
                category=data["category"],
                quantity=data["quantity"],
                unit=data["unit"],
                source_id=data.get("source_id"),
                source_type=data.get("source_type"),
                dest_id=data.get("dest_id"),
                dest_type=data.get("dest_type"),
                flow_date=data.get("flow_date") or now,
                recorded_at=now,
            )
            self.db.add(flow)

        self.db.refresh(flow)
        logger.info(
            f"자재 흐름 기록: {flow.material_type} {flow.quantity}{flow.unit} ({flow.category.value})"
        )
        return flow

    def update_flow(self, flow_id: int, data: dict) -> MaterialFlow:
        with self.atomic():
            flow = self.get_flow(flow_id)
            if "quantity" in data:
                if not data["quantity"] or data["quantity"] < 0:
                    raise ServiceError("Valid quantity is required")
                flow.quantity = data["quantity"]
        self.db.refresh(flow)
        return flow

    def delete_flow(self, flow_id: int) -> None:
        with self.atomic():
            self.db.delete(self.get_flow(flow_id))
        logger.info(f"자재 흐름 기록 삭제: #{flow_id}")
