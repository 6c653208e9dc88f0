"""Dependency injection setup module.

Registers the process-wide collaborators of the patient lifecycle in the
service registry. Per-request objects (session, repository, lifecycle
service) are composed in ``patient_service.api.dependencies``.
"""

from loguru import logger

from patient_service.event_bus import EventBus, get_event_bus
from patient_service.events.publisher import EventBusPublisher, EventPublisher
from patient_service.services.analytics_service import AnalyticsService, get_analytics_service
from patient_service.services.billing_gateway import BillingGateway, HttpBillingGateway
from patient_service.services.registry import ServiceRegistry
from patient_service.settings import Settings


def register_core_services(registry: ServiceRegistry) -> None:
    """Register the event bus and the analytics consumer's service.

    Args:
        registry: Service registry instance to register services in
    """
    logger.debug("Registering core services in DI container")

    registry.register_singleton(EventBus, get_event_bus())
    registry.register_factory(AnalyticsService, get_analytics_service)


def register_app_services(registry: ServiceRegistry, settings: Settings) -> None:
    """Register the lifecycle collaborators: event publisher and billing gateway.

    The billing gateway is only registered when ``billing_url`` is configured.

    Args:
        registry: Service registry instance to register services in
        settings: Application settings
    """
    logger.debug("Registering application services in DI container")

    registry.register_singleton(EventPublisher, EventBusPublisher(registry.get(EventBus)))

    if settings.billing_url:
        registry.register_singleton(BillingGateway, HttpBillingGateway(settings.billing_url, settings.billing_timeout))
        logger.info(f"Billing gateway: {settings.billing_url} (timeout {settings.billing_timeout}s)")
    else:
        registry.unregister(BillingGateway)
        logger.warning("Billing gateway not configured, billing accounts will not be provisioned")


def register_all_services(registry: ServiceRegistry, settings: Settings) -> None:
    """Register all services in the service registry.

    Args:
        registry: Service registry instance to register services in
        settings: Application settings
    """
    register_core_services(registry)
    register_app_services(registry, settings)


def release_services(registry: ServiceRegistry) -> None:
    """Close resources held by registered services."""
    gateway = registry.get_optional(BillingGateway)
    if isinstance(gateway, HttpBillingGateway):
        gateway.close()
    registry.unregister(BillingGateway)
