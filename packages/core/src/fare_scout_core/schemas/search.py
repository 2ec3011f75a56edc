"""Search request schemas."""

from __future__ import annotations

from datetime import date  # noqa: TC003

from pydantic import BaseModel, Field, field_validator, model_validator

from .enums import CabinClass


class SearchRequest(BaseModel):
    """Parameters of a single (departure, return) search on the portal."""

    origin: str = Field(min_length=3, max_length=3, description="IATA airport code")
    destination: str = Field(
        min_length=3, max_length=3, description="IATA airport code"
    )
    departure_date: date
    return_date: date | None = None
    cabin_class: CabinClass = CabinClass.ECONOMY
    adults: int = Field(default=1, ge=1, le=9)
    currency: str = Field(default="EUR", min_length=3, max_length=3)

    @field_validator("origin", "destination")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _validate_dates(self) -> SearchRequest:
        if self.return_date and self.return_date < self.departure_date:
            msg = "return_date must be after departure_date"
            raise ValueError(msg)
        return self

    @property
    def is_round(self) -> bool:
        return self.return_date is not None


class RangeSearchRequest(BaseModel):
    """A search expanded over departure (and optionally return) date ranges."""

    origin: str = Field(min_length=3, max_length=3, description="IATA airport code")
    destination: str = Field(
        min_length=3, max_length=3, description="IATA airport code"
    )
    departure_start: date
    departure_end: date | None = None
    return_start: date | None = None
    return_end: date | None = None
    cabin_class: CabinClass = CabinClass.ECONOMY
    currency: str = Field(default="EUR", min_length=3, max_length=3)

    @field_validator("origin", "destination")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _validate_ranges(self) -> RangeSearchRequest:
        if self.departure_end and self.departure_end < self.departure_start:
            msg = "departure_end must not be before departure_start"
            raise ValueError(msg)
        if self.return_end is not None:
            if self.return_start is None:
                msg = "return_end requires return_start"
                raise ValueError(msg)
            if self.return_end < self.return_start:
                msg = "return_end must not be before return_start"
                raise ValueError(msg)
        return self
