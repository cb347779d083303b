"""Stop request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import Stop


class StopModel(BaseModel):
    id: str
    name: str
    kind: Literal["terminal", "stop"]
    latitude: float
    longitude: float
    vehicle_types: List[str] = Field(default_factory=list)
    area: str = ""

    @classmethod
    def from_domain(cls, stop: Stop) -> "StopModel":
        return cls(
            id=stop.id,
            name=stop.name,
            kind=stop.kind,
            latitude=stop.latitude,
            longitude=stop.longitude,
            vehicle_types=list(stop.vehicle_types),
            area=stop.area,
        )


class StopUpsertRequest(BaseModel):
    id: Optional[str] = Field(default=None, description="Omit to create a new stop.")
    name: str = Field(..., min_length=1)
    kind: Literal["terminal", "stop"] = "stop"
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    vehicle_types: List[str] = Field(default_factory=list)
    area: Optional[str] = Field(
        default=None,
        description="Administrative area. Looked up by reverse geocoding when omitted.",
    )

    def to_domain(self) -> Stop:
        return Stop(
            id=self.id or "",
            name=self.name.strip(),
            kind=self.kind,
            latitude=self.latitude,
            longitude=self.longitude,
            vehicle_types=tuple(self.vehicle_types),
            area=(self.area or "").strip(),
        )
