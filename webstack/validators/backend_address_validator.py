from typing import Iterable, Optional

from webstack.exceptions.stack_exceptions import (
    MissingBackendAddressError,
    ReservedEnvironmentVariableError,
)
from webstack.schemas.service import ServiceSpec
from webstack.validators.base import ServiceValidator

BACKEND_HOST_VARIABLE = "APP_HOST"
BACKEND_PORT_VARIABLE = "APP_PORT"


class BackendAddressValidator(ServiceValidator):
    def __init__(self, backend_address: Optional[str]) -> None:
        self.backend_address = backend_address

    def validate(self, service: ServiceSpec) -> None:
        if self.backend_address is None or not str(self.backend_address).strip():
            raise MissingBackendAddressError(
                f"Service {service.name} rejected: no backend address to inject as "
                f"{BACKEND_HOST_VARIABLE}. Define the backend service first."
            )


class ReservedEnvironmentValidator(ServiceValidator):
    def __init__(
        self,
        reserved: Iterable[str] = (BACKEND_HOST_VARIABLE, BACKEND_PORT_VARIABLE),
    ) -> None:
        self.reserved = tuple(reserved)

    def validate(self, service: ServiceSpec) -> None:
        clashes = sorted(set(service.environment) & set(self.reserved))
        if clashes:
            raise ReservedEnvironmentVariableError(
                f"Service {service.name} rejected: environment sets "
                f"{', '.join(clashes)}, which the stack injects itself."
            )
