from abc import ABC, abstractmethod

from webstack.schemas.service import ServiceSpec


class ServiceValidator(ABC):
    @abstractmethod
    def validate(self, service: ServiceSpec) -> None:
        ...
