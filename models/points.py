"""Pydantic schema for points posted to the telemetry backend."""

from __future__ import annotations

from typing import Dict, Optional, Union

from pydantic import BaseModel, Field, StrictInt, field_validator

FieldValue = Union[StrictInt, float]


def _escape_key(text: str) -> str:
    return text.replace("\\", "\\\\").replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def _escape_measurement(text: str) -> str:
    return text.replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ")


class DataPoint(BaseModel):
    """One line-protocol point: ``measurement field=value timestamp``."""

    measurement: str = Field(..., min_length=1)
    fields: Dict[str, FieldValue] = Field(..., min_length=1)
    timestamp_ns: int = Field(..., ge=0, description="Nanoseconds since the Unix epoch.")
    precision: Dict[str, int] = Field(
        default_factory=dict,
        description="Decimal places used when rendering float fields.",
    )

    @field_validator("fields")
    @classmethod
    def _keys_not_blank(cls, value: Dict[str, FieldValue]) -> Dict[str, FieldValue]:
        if any(not key.strip() for key in value):
            raise ValueError("field names must not be blank")
        return value

    def _render_field(self, key: str, value: FieldValue) -> str:
        if isinstance(value, int):
            rendered = f"{value}i"
        else:
            digits: Optional[int] = self.precision.get(key)
            rendered = f"{value:.{digits}f}" if digits is not None else repr(value)
        return f"{_escape_key(key)}={rendered}"

    def to_line(self) -> str:
        field_set = ",".join(
            self._render_field(key, value) for key, value in sorted(self.fields.items())
        )
        return f"{_escape_measurement(self.measurement)} {field_set} {self.timestamp_ns}"
