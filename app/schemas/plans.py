from datetime import date

from pydantic import BaseModel, Field, model_validator

from app.models.enums import PlanType

class PlanOut(BaseModel):
    id: int
    name: str
    type: PlanType
    price: float
    currency: str
    duration_months: int | None
    duration_until_date: date | None
    is_active: bool

    class Config:
        from_attributes = True

class PlanCreateIn(BaseModel):
    name: str
    type: PlanType
    price: float = Field(ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    duration_months: int | None = Field(default=None, gt=0)
    duration_until_date: date | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def one_duration(self):
        if (self.duration_months is None) == (self.duration_until_date is None):
            raise ValueError("Set exactly one of duration_months or duration_until_date")
        return self

class PlanUpdateIn(BaseModel):
    name: str | None = None
    type: PlanType | None = None
    price: float | None = Field(default=None, ge=0)
    duration_months: int | None = Field(default=None, gt=0)
    duration_until_date: date | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def check_changes(self):
        # omitted fields stay untouched; an explicit null would blank a required column
        nulled = sorted(f for f in self.model_fields_set if getattr(self, f) is None)
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        if self.duration_months is not None and self.duration_until_date is not None:
            raise ValueError("Set only one of duration_months or duration_until_date")
        return self
