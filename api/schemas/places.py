"""Place search API schemas."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class PlaceResultModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    coordinates: List[float] = Field(..., description="[lat, lon]")
