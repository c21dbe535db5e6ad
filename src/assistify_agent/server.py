"""
Agent Service Host

Wires the ability registry, dispatcher, audit store and HTTP channels
into a FastAPI application. Services are constructed once per process
and passed to every consumer.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI
import uvicorn

from .channels.abilities_router import create_abilities_router
from .channels.audit_router import create_audit_router
from .channels.auth import ActorResolver, actor_dependency
from .config.schema import AppConfig
from .core.ability_engine import AbilityDispatcher
from .core.ability_registry import AbilityRegistry
from .core.audit_logger import AuditLogger
from .core.auth.policy import AuthorizationGate, PolicyEngine
from .core.bootstrap import bootstrap_registry
from .core.confirmation import ConfirmationManager
from .core.schema_export import SchemaExporter
from .data.repos.audit import AuditRepository
from .jobs.retention import RetentionJob

logger = logging.getLogger(__name__)


@dataclass
class AgentServices:
    """Process-wide service instances"""
    config: AppConfig
    registry: AbilityRegistry
    repository: AuditRepository
    audit: AuditLogger
    gate: AuthorizationGate
    dispatcher: AbilityDispatcher
    exporter: SchemaExporter
    confirmations: ConfirmationManager
    retention: RetentionJob


def build_services(config: AppConfig, registry: Optional[AbilityRegistry] = None) -> AgentServices:
    """
    Construct and bootstrap every service from configuration.

    A pre-built ``registry`` is bootstrapped in place (config hooks and
    categories are added to it).
    """
    if config.storage.type != "sqlite":
        raise ValueError(f"Unsupported storage type: {config.storage.type}")

    registry = registry if registry is not None else AbilityRegistry()
    bootstrap_registry(
        registry,
        entrypoints=config.abilities.hooks,
        categories=config.abilities.categories,
    )

    repository = AuditRepository(config.database_path)
    audit = AuditLogger(repository, enabled=config.audit.enabled)
    gate = AuthorizationGate(PolicyEngine(role_grants=config.auth.role_grants))
    dispatcher = AbilityDispatcher(registry, audit=audit, gate=gate)

    return AgentServices(
        config=config,
        registry=registry,
        repository=repository,
        audit=audit,
        gate=gate,
        dispatcher=dispatcher,
        exporter=SchemaExporter(registry, gate),
        confirmations=ConfirmationManager(
            dispatcher,
            audit=audit,
            ttl_seconds=config.abilities.confirmation_ttl_seconds,
        ),
        retention=RetentionJob(
            repository,
            retention_days=config.audit.retention_days,
            interval_seconds=config.audit.cleanup_interval_hours * 3600,
        ),
    )


def create_app(
    config: Optional[AppConfig] = None,
    services: Optional[AgentServices] = None,
    run_retention: bool = True,
) -> FastAPI:
    """Create the FastAPI application"""
    services = services or build_services(config or AppConfig())
    config = services.config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if run_retention and config.audit.cleanup_interval_hours > 0:
            services.retention.start()
        yield
        await services.retention.stop()

    app = FastAPI(
        title=config.name,
        description=config.description,
        version=config.version,
        lifespan=lifespan,
    )
    app.state.services = services

    get_actor = actor_dependency(ActorResolver(config.auth.api_keys))

    app.include_router(create_abilities_router(
        services.dispatcher,
        services.exporter,
        get_actor,
        confirmations=services.confirmations,
    ))
    app.include_router(create_audit_router(
        services.repository,
        services.gate.checker,
        get_actor,
        config=config.audit,
    ))

    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "agent": config.id,
            "version": config.version,
            "abilities": services.registry.count(),
        }

    return app


def run_server(config: AppConfig, log_level: str = "info") -> None:
    """Serve the application with uvicorn (blocking)"""
    app = create_app(config)
    logger.info(f"Starting {config.name} on http://{config.server.host}:{config.server.port}")
    logger.info(f"  Abilities: http://{config.server.host}:{config.server.port}/abilities")
    logger.info(f"  Audit log: http://{config.server.host}:{config.server.port}/audit-logs")
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level=log_level)
