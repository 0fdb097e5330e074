"""
warehouses 테이블 — 창고 정보 (위치, 용량, 에너지원)
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(20), unique=True, nullable=False)  # 예: "WH-BER-01"
    name = Column(String(100), nullable=False)
    location = Column(String(100), nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=True)
    capacity = Column(Integer, nullable=False)  # 수용 가능 단위 수
    is_active = Column(Boolean, nullable=False, default=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    carbon_per_sq_meter = Column(Float, nullable=True)
    energy_source = Column(String(50), nullable=True)  # 예: "SOLAR", "GRID"
    solar_percentage = Column(Float, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    manager = relationship("User", lazy="selectin")
