"""Service factory: process-wide registry of service classes and singletons"""

from typing import Type, Dict, Any, List
from enum import Enum

from .base_service import BaseService
from ..core.logger import CentralizedLogger


class ServiceType(str, Enum):
    """Supported service types"""
    ROUTING = "routing"


class ServiceFactory:
    """Creates services by type; service modules register themselves on import"""

    _services: Dict[ServiceType, Type[BaseService]] = {}
    _instances: Dict[ServiceType, BaseService] = {}
    _logger = CentralizedLogger("ServiceFactory")

    @classmethod
    def register(cls, service_type: ServiceType, service_class: Type[BaseService]):
        cls._services[service_type] = service_class
        cls._logger.debug(f"Registered service: {service_type.value}")

    @classmethod
    def create(
        cls,
        service_type: ServiceType,
        singleton: bool = True,
        **kwargs
    ) -> BaseService:
        """Create a service, or return the existing singleton

        Keyword arguments are passed to the constructor and are ignored when
        the singleton already exists.

        Raises:
            ValueError: If service type is unknown
        """
        if singleton and service_type in cls._instances:
            if kwargs:
                cls._logger.warning(
                    f"{service_type.value} service already created; "
                    f"ignoring arguments {sorted(kwargs)}"
                )
            return cls._instances[service_type]

        service_class = cls._services.get(service_type)
        if not service_class:
            raise ValueError(f"Unknown service type: {service_type}")

        try:
            instance = service_class(**kwargs)
        except Exception as e:
            cls._logger.error(f"Failed to create {service_type.value} service: {str(e)}")
            raise

        if singleton:
            cls._instances[service_type] = instance

        cls._logger.info(f"Created {service_type.value} service (singleton: {singleton})")
        return instance

    @classmethod
    def get_all_instances(cls) -> Dict[ServiceType, BaseService]:
        return cls._instances.copy()

    @classmethod
    def clear_instances(cls):
        """Forget singletons without shutting them down (tests)"""
        cls._instances.clear()

    @classmethod
    def get_available_services(cls) -> List[ServiceType]:
        return list(cls._services.keys())

    @classmethod
    async def health_check_all(cls) -> Dict[str, Any]:
        """Health status of every live singleton, keyed by service type"""
        health_status = {}

        for service_type, instance in cls._instances.items():
            try:
                health_status[service_type.value] = await instance.health_check()
            except Exception as e:
                health_status[service_type.value] = {"status": "error", "error": str(e)}

        return health_status

    @classmethod
    async def shutdown_all(cls):
        """Shut down and forget every singleton

        A failing shutdown is logged and does not stop the others.
        """
        for service_type, instance in list(cls._instances.items()):
            try:
                await instance.shutdown()
            except Exception as e:
                cls._logger.error(f"Error shutting down {service_type.value} service: {str(e)}")
        cls._instances.clear()
