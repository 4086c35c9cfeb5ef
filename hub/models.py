"""Pydantic models for the hub configuration (validated at construction)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from hub.entities import CARGO_PERISHABLE, CARGO_REGULAR, CargoClass
from hub.processes import DEFAULT_PERISHABLE_SHARE


class ClassConfig(BaseModel):
    """Buffer, device pool and deadline settings for one cargo class."""

    buffer_capacity: int = Field(default=8, ge=0)
    min_service: float = Field(default=5.0, ge=0.0, description="Minutes")
    max_service: float = Field(default=10.0, ge=0.0, description="Minutes")
    deadline_minutes: float = Field(default=15.0, ge=0.0)
    devices: int = Field(default=2, ge=1)
    device_capacity: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def check_service_range(self) -> "ClassConfig":
        if self.min_service > self.max_service:
            raise ValueError("min_service must not exceed max_service")
        return self


def _default_perishable() -> ClassConfig:
    return ClassConfig(
        buffer_capacity=8, min_service=5, max_service=10, deadline_minutes=15, devices=2
    )


def _default_regular() -> ClassConfig:
    return ClassConfig(
        buffer_capacity=10, min_service=8, max_service=15, deadline_minutes=20, devices=2
    )


class HubConfig(BaseModel):
    """
    Full simulation setup. Use model_validate(params) on a params dict (as
    produced by eval.run_episodes.load_config); missing keys take defaults.
    """

    horizon: float = Field(default=1440.0, gt=0.0, description="Simulated minutes")
    sources: list[float] = Field(default_factory=lambda: [0.5, 0.4, 0.5], min_length=1)
    perishable_share: float = Field(default=DEFAULT_PERISHABLE_SHARE, ge=0.0, le=1.0)
    perishable: ClassConfig = Field(default_factory=_default_perishable)
    regular: ClassConfig = Field(default_factory=_default_regular)

    @model_validator(mode="before")
    @classmethod
    def fill_class_defaults(cls, data: Any) -> Any:
        # Partial class overrides start from that class's own defaults
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, default in (
            (CARGO_PERISHABLE, _default_perishable),
            (CARGO_REGULAR, _default_regular),
        ):
            override = data.get(name)
            if isinstance(override, dict):
                data[name] = {**default().model_dump(), **override}
        return data

    @model_validator(mode="after")
    def check_rates(self) -> "HubConfig":
        if any(rate <= 0 for rate in self.sources):
            raise ValueError("every source rate must be positive")
        return self

    def for_class(self, cargo_class: CargoClass) -> ClassConfig:
        return self.perishable if cargo_class is CargoClass.PERISHABLE else self.regular

    @classmethod
    def from_params(cls, params: dict[str, Any] | None) -> "HubConfig":
        params = dict(params or {})
        classes = params.pop("classes", None) or {}
        for name in (CARGO_PERISHABLE, CARGO_REGULAR):
            if name in classes and name not in params:
                params[name] = classes[name]
        return cls.model_validate(params)
