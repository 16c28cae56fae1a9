"""Dependency injection container configuration."""

from dependency_injector import containers, providers

from src.infrastructure.config import get_settings
from src.infrastructure.patterns.circuit_breaker import CircuitBreakerService
from src.infrastructure.patterns.startup_pipeline import StartupPipeline
from src.infrastructure.persistence.database import Database


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "src.presentation.api.v1.endpoints.health",
            "src.presentation.api.v1.endpoints.breakers",
        ]
    )

    # Configuration
    config = providers.Singleton(get_settings)

    # Infrastructure
    database = providers.Singleton(Database, settings=config)

    # One registry per process; breakers live as long as the process
    circuit_breaker = providers.Singleton(
        CircuitBreakerService,
        defaults=config.provided.breaker_config.call(),
    )

    startup_pipeline = providers.Factory(StartupPipeline, name=config.provided.app_name)
