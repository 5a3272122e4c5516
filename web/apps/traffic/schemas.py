"""Pydantic schema for traffic configuration payloads."""

from pydantic import BaseModel, Field, field_validator

from .generator import TrafficConfig


class TrafficConfigDTO(BaseModel):
    """Request body for start and config updates. Every field is optional."""

    base_interval_ms: int = Field(default=1000, gt=0)
    variation_percent: int = Field(default=50, ge=0, le=100)
    burst_probability: float = Field(default=0.1, ge=0.0, le=1.0)
    quiet_probability: float = Field(default=0.05, ge=0.0, le=1.0)
    burst_count: int = Field(default=5, ge=1)
    quiet_duration_ms: int = Field(default=5000, ge=0)
    target_endpoints: list[str] = Field(default_factory=lambda: ["/api/orders/"], min_length=1)

    @field_validator("target_endpoints")
    @classmethod
    def validate_paths(cls, v: list[str]) -> list[str]:
        """Endpoints are paths on this service, so they must start with '/'."""
        for path in v:
            if not path.startswith("/"):
                raise ValueError("target endpoints must be absolute paths")
        return v

    def to_config(self) -> TrafficConfig:
        return TrafficConfig(
            base_interval_ms=self.base_interval_ms,
            variation_percent=self.variation_percent,
            burst_probability=self.burst_probability,
            quiet_probability=self.quiet_probability,
            burst_count=self.burst_count,
            quiet_duration_ms=self.quiet_duration_ms,
            target_endpoints=tuple(self.target_endpoints),
        )
