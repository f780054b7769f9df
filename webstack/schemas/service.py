from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class HealthCheckProtocol(str, Enum):
    TCP = "TCP"
    HTTP = "HTTP"


class NetworkSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    vpc_cidr: str = Field("10.0.0.0/16", examples=["10.1.0.0/16"])
    max_azs: int = Field(2, ge=1, le=6)
    nat_gateways: int = Field(1, ge=0)
    cidr_mask: int = Field(24, ge=16, le=28)

    @field_validator("vpc_cidr")
    @classmethod
    def vpc_cidr_has_prefix(cls, v: str) -> str:
        address, _, prefix = v.strip().partition("/")
        if not address or not prefix.isdigit():
            raise ValueError("vpc_cidr must be in a.b.c.d/nn form")
        return v.strip()


class HealthCheckSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    protocol: HealthCheckProtocol
    path: Optional[str] = Field(None, examples=["/health"])
    interval_seconds: int = Field(30, ge=5, le=300)
    timeout_seconds: Optional[int] = Field(None, ge=2, le=120)
    healthy_threshold: int = Field(3, ge=2, le=10)
    unhealthy_threshold: int = Field(3, ge=2, le=10)
    healthy_http_codes: str = "200"

    @field_validator("path")
    @classmethod
    def path_is_absolute(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith("/"):
            raise ValueError("health check path must start with '/'")
        return v


class ScalingSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_capacity: int = Field(2, ge=1)
    max_capacity: int = Field(5, ge=1)
    target_cpu_utilization: int = Field(70, ge=10, le=95)
    cooldown_seconds: int = Field(60, ge=0)


class ServiceSpec(BaseModel):
    """One containerized workload and the load balancer in front of it."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., max_length=32, examples=["backend"])
    container_name: str = Field(..., max_length=255, examples=["php-fpm"])
    asset_directory: Optional[str] = Field(None, examples=["php-fpm"])
    registry_image: Optional[str] = Field(None, examples=["nginx:1.27"])
    container_port: int = Field(..., ge=1, le=65535)
    listener_port: int = Field(..., ge=1, le=65535)
    cpu: int = 256
    memory_mib: int = 512
    environment: Dict[str, str] = Field(default_factory=dict)
    command: Optional[List[str]] = None
    scaling: ScalingSpec = Field(default_factory=ScalingSpec)
    health_check: HealthCheckSpec

    @field_validator("name", "container_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("cpu")
    @classmethod
    def cpu_is_fargate_size(cls, v: int) -> int:
        if v not in (256, 512, 1024, 2048, 4096):
            raise ValueError(f"cpu {v} is not a Fargate task size")
        return v

    @model_validator(mode="after")
    def exactly_one_image_source(self) -> "ServiceSpec":
        if (self.asset_directory is None) == (self.registry_image is None):
            raise ValueError(
                "exactly one of asset_directory or registry_image must be set"
            )
        return self


def backend_spec(**overrides) -> ServiceSpec:
    fields = dict(
        name="backend",
        container_name="php-fpm",
        asset_directory="php-fpm",
        container_port=9000,
        listener_port=9000,
        health_check=HealthCheckSpec(protocol=HealthCheckProtocol.TCP),
    )
    fields.update(overrides)
    return ServiceSpec(**fields)


def edge_spec(**overrides) -> ServiceSpec:
    fields = dict(
        name="edge",
        container_name="nginx",
        asset_directory="nginx",
        container_port=80,
        listener_port=80,
        command=["/bin/bash", "/opt/command.sh"],
        health_check=HealthCheckSpec(
            protocol=HealthCheckProtocol.HTTP,
            path="/health",
            timeout_seconds=5,
        ),
    )
    fields.update(overrides)
    return ServiceSpec(**fields)
