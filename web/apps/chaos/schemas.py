"""Pydantic schema for fault-injection settings."""

from pydantic import BaseModel, Field, model_validator

from .injector import AssaultConfig


class AssaultConfigDTO(BaseModel):
    level: int = Field(default=5, ge=1, le=10)
    latency_range_start: int = Field(default=1000, ge=0)
    latency_range_end: int = Field(default=3000, ge=0)
    latency_active: bool = True
    exceptions_active: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.latency_range_end < self.latency_range_start:
            raise ValueError("latency_range_end must be >= latency_range_start")
        return self

    def to_config(self) -> AssaultConfig:
        return AssaultConfig(**self.model_dump())
