from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional


def _truncate_to_int(value: Any) -> Any:
    """Whole part of a float or numeric string; anything else is left for pydantic to judge."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return value
    if isinstance(value, float):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return value
    return value

# Collection: lessons
class LessonCreate(BaseModel):
    subject: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    availability: int = Field(..., ge=0)

    @field_validator("availability", mode="before")
    @classmethod
    def truncate_availability(cls, value):
        return _truncate_to_int(value)

class AvailabilityChange(BaseModel):
    change: int

    @field_validator("change", mode="before")
    @classmethod
    def truncate_change(cls, value):
        return _truncate_to_int(value)

# Collection: orders
class OrderLine(BaseModel):
    """Snapshot of a lesson at order time, not a live reference."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", min_length=1)
    subject: str
    location: str
    price: float = Field(..., ge=0)

class OrderCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    lessons: List[OrderLine] = Field(..., min_length=1)
    total: Optional[float] = None

    def to_document(self) -> dict:
        lines = [line.model_dump(by_alias=True) for line in self.lessons]
        total = self.total if self.total is not None else sum(line["price"] for line in lines)
        return {"name": self.name, "phone": self.phone, "lessons": lines, "total": float(total)}
