from webstack.exceptions.stack_exceptions import InvalidReplicaRangeError
from webstack.schemas.service import ServiceSpec
from webstack.validators.base import ServiceValidator

MIN_REPLICA_FLOOR = 2


class ReplicaRangeValidator(ServiceValidator):
    def __init__(self, floor: int = MIN_REPLICA_FLOOR) -> None:
        self.floor = floor

    def validate(self, service: ServiceSpec) -> None:
        scaling = service.scaling
        if scaling.min_capacity < self.floor:
            raise InvalidReplicaRangeError(
                f"Service {service.name} rejected: min capacity {scaling.min_capacity} "
                f"is below the floor of {self.floor} replicas."
            )
        if scaling.max_capacity < scaling.min_capacity:
            raise InvalidReplicaRangeError(
                f"Service {service.name} rejected: max capacity {scaling.max_capacity} "
                f"is lower than min capacity {scaling.min_capacity}."
            )
