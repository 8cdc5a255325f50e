import time
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationInfo,
    field_validator,
    model_validator,
)


class FieldKind(str, Enum):
    """Value kinds an event field can carry."""

    STRING = "string"
    BYTES = "bytes"
    INTEGER = "integer"
    DOUBLE = "double"
    BOOL = "bool"


_VALUE_ADAPTERS: dict[FieldKind, TypeAdapter] = {
    FieldKind.STRING: TypeAdapter(tuple[str, ...]),
    FieldKind.BYTES: TypeAdapter(tuple[bytes, ...]),
    FieldKind.INTEGER: TypeAdapter(tuple[int, ...]),
    FieldKind.DOUBLE: TypeAdapter(tuple[float, ...]),
    FieldKind.BOOL: TypeAdapter(tuple[bool, ...]),
}


class EventField(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value_type: FieldKind = FieldKind.STRING
    values: tuple[Any, ...] = ()

    @field_validator("values")
    @classmethod
    def _coerce_to_kind(cls, values: tuple[Any, ...], info: ValidationInfo):
        kind = info.data.get("value_type")
        if kind is None:
            return values
        return _VALUE_ADAPTERS[kind].validate_python(values)

    @property
    def first(self) -> Any:
        return self.values[0] if self.values else None


def _infer_field(name: str, raw: Any) -> dict[str, Any]:
    """Build a field from a bare JSON value, inferring its kind."""
    values = list(raw) if isinstance(raw, (list, tuple)) else [raw]
    if not values:
        return {"name": name, "value_type": FieldKind.STRING, "values": ()}
    sample = values[0]
    # bool before int: bool is an int subclass
    if isinstance(sample, bool):
        kind = FieldKind.BOOL
    elif isinstance(sample, int):
        kind = FieldKind.INTEGER
    elif isinstance(sample, float):
        kind = FieldKind.DOUBLE
    elif isinstance(sample, str):
        kind = FieldKind.STRING
    elif isinstance(sample, bytes):
        kind = FieldKind.BYTES
    else:
        raise ValueError(f"unsupported value for field {name!r}: {sample!r}")
    return {"name": name, "value_type": kind, "values": tuple(values)}


class Event(BaseModel):
    """One structured event delivered by the upstream pipeline.

    ``fields`` is either a list of typed fields or, in the compact form, a
    mapping of field name to a bare value (or list of values) whose kind is
    inferred from its Python type.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(
        default_factory=time.time_ns, description="Creation time, epoch nanoseconds"
    )
    fields: tuple[EventField, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _expand_compact_fields(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("fields"), dict):
            expanded = [_infer_field(n, v) for n, v in data["fields"].items()]
            data = {**data, "fields": expanded}
        return data
