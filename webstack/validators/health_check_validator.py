from webstack.exceptions.stack_exceptions import InvalidHealthCheckError
from webstack.schemas.service import HealthCheckProtocol, ServiceSpec
from webstack.validators.base import ServiceValidator


class HealthCheckValidator(ServiceValidator):
    """Checks a service's health check against the load balancer that runs it.

    Network load balancers probe with TCP, application load balancers with HTTP
    against a path.
    """

    def __init__(self, expected_protocol: HealthCheckProtocol) -> None:
        self.expected_protocol = expected_protocol

    def validate(self, service: ServiceSpec) -> None:
        health_check = service.health_check
        if health_check.protocol != self.expected_protocol:
            raise InvalidHealthCheckError(
                f"Service {service.name} rejected: health check protocol "
                f"{health_check.protocol.value} does not match the expected "
                f"{self.expected_protocol.value}."
            )
        if health_check.protocol == HealthCheckProtocol.HTTP and not health_check.path:
            raise InvalidHealthCheckError(
                f"Service {service.name} rejected: HTTP health check has no path."
            )
        if health_check.protocol == HealthCheckProtocol.TCP and (
            health_check.path or health_check.timeout_seconds
        ):
            raise InvalidHealthCheckError(
                f"Service {service.name} rejected: TCP health check cannot set "
                "a path or timeout."
            )
