"""
Assistify Agent Configuration Schema

Defines the configuration structure for the ability/audit service.
All configuration can be specified via assistify.yaml or environment variables.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pathlib import Path


FALSE_STRINGS = ("false", "no", "off", "0", "")


def _as_bool(value: Any) -> bool:
    """YAML booleans, or strings left by ${VAR} interpolation"""
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


@dataclass
class ServerConfig:
    """HTTP server binding"""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class StorageConfig:
    """Configuration for audit storage"""
    type: str = "sqlite"
    path: str = "./data/audit.db"
    # Additional storage options
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AuditConfig:
    """Audit trail behavior and the limits of its read API"""
    enabled: bool = True
    retention_days: int = 90
    cleanup_interval_hours: float = 24
    default_per_page: int = 50
    max_per_page: int = 100
    export_limit: int = 10000


@dataclass
class AbilitiesConfig:
    """
    Ability registration.

    ``hooks`` are ``module:function`` entrypoints called with the registry
    during startup; ``categories`` adds category labels.
    """
    hooks: List[str] = field(default_factory=lambda: ["assistify_agent.abilities.builtin:register"])
    categories: Dict[str, str] = field(default_factory=dict)
    confirmation_ttl_seconds: int = 300


@dataclass
class ApiKeyConfig:
    """Actor bound to an API key"""
    actor_id: int = 0
    actor_type: str = "admin"
    display_name: Optional[str] = None
    permissions: List[str] = field(default_factory=list)


@dataclass
class AuthConfig:
    """
    Request authentication and permission grants.

    Requests without a known API key run as a guest actor.
    ``role_grants`` replaces the default permissions of an actor type.
    """
    api_keys: Dict[str, ApiKeyConfig] = field(default_factory=dict)
    role_grants: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class AppConfig:
    """
    Central configuration for the Assistify agent service.

    This configuration can be loaded from:
    - assistify.yaml (primary)
    - Environment variables (interpolated into the YAML)
    - Programmatic defaults

    Example assistify.yaml:
    ```yaml
    agent:
      id: "assistify"
      name: "Assistify Store Agent"

    server:
      port: 8000

    storage:
      type: sqlite
      path: ./data/audit.db

    audit:
      retention_days: 90

    abilities:
      hooks:
        - "assistify_agent.abilities.builtin:register"
        - "my_store.abilities:register"

    auth:
      api_keys:
        "${ASSISTIFY_ADMIN_KEY}":
          actor_id: 1
          actor_type: admin
    ```
    """
    # Agent identity
    id: str = "assistify"
    name: str = "Assistify Store Agent"
    version: str = "0.1.0"
    description: str = "AI ability dispatch and audit service"

    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    abilities: AbilitiesConfig = field(default_factory=AbilitiesConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    # Working directory (relative storage paths resolve against it)
    working_dir: Path = field(default_factory=Path.cwd)

    # Additional metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def database_path(self) -> Path:
        path = Path(self.storage.path)
        return path if path.is_absolute() else Path(self.working_dir) / path

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Create AppConfig from dictionary (e.g., parsed YAML)"""
        agent_data = data.get("agent", {}) or {}

        server_data = data.get("server", {}) or {}
        server_config = ServerConfig(
            host=server_data.get("host", "0.0.0.0"),
            port=int(server_data.get("port", 8000)),
        )

        storage_data = data.get("storage", {}) or {}
        storage_config = StorageConfig(
            type=storage_data.get("type", "sqlite"),
            path=storage_data.get("path", "./data/audit.db"),
            metadata={k: v for k, v in storage_data.items()
                     if k not in ("type", "path")}
        )

        audit_data = data.get("audit", {}) or {}
        audit_config = AuditConfig(
            enabled=_as_bool(audit_data.get("enabled", True)),
            retention_days=int(audit_data.get("retention_days", 90)),
            cleanup_interval_hours=float(audit_data.get("cleanup_interval_hours", 24)),
            default_per_page=int(audit_data.get("default_per_page", 50)),
            max_per_page=int(audit_data.get("max_per_page", 100)),
            export_limit=int(audit_data.get("export_limit", 10000)),
        )
        if audit_config.retention_days < 0:
            raise ValueError(f"audit.retention_days must be >= 0, got {audit_config.retention_days}")

        abilities_data = data.get("abilities", {}) or {}
        abilities_config = AbilitiesConfig(
            hooks=list(abilities_data.get("hooks", AbilitiesConfig().hooks)),
            categories=dict(abilities_data.get("categories", {}) or {}),
            confirmation_ttl_seconds=int(abilities_data.get("confirmation_ttl_seconds", 300)),
        )

        auth_data = data.get("auth", {}) or {}
        api_keys = {}
        for key, key_data in (auth_data.get("api_keys", {}) or {}).items():
            key_data = key_data or {}
            api_keys[str(key)] = ApiKeyConfig(
                actor_id=int(key_data.get("actor_id", 0)),
                actor_type=key_data.get("actor_type", "admin"),
                display_name=key_data.get("display_name"),
                permissions=list(key_data.get("permissions", []) or []),
            )
        auth_config = AuthConfig(
            api_keys=api_keys,
            role_grants={k: list(v or []) for k, v in (auth_data.get("role_grants", {}) or {}).items()},
        )

        return cls(
            id=agent_data.get("id", "assistify"),
            name=agent_data.get("name", "Assistify Store Agent"),
            version=agent_data.get("version", "0.1.0"),
            description=agent_data.get("description", "AI ability dispatch and audit service"),
            server=server_config,
            storage=storage_config,
            audit=audit_config,
            abilities=abilities_config,
            auth=auth_config,
            working_dir=Path(data.get("working_dir", ".")),
            metadata=data.get("metadata", {}) or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (for serialization)"""
        return {
            "agent": {
                "id": self.id,
                "name": self.name,
                "version": self.version,
                "description": self.description,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
            },
            "storage": {
                "type": self.storage.type,
                "path": self.storage.path,
                **self.storage.metadata,
            },
            "audit": {
                "enabled": self.audit.enabled,
                "retention_days": self.audit.retention_days,
                "cleanup_interval_hours": self.audit.cleanup_interval_hours,
                "default_per_page": self.audit.default_per_page,
                "max_per_page": self.audit.max_per_page,
                "export_limit": self.audit.export_limit,
            },
            "abilities": {
                "hooks": list(self.abilities.hooks),
                "categories": dict(self.abilities.categories),
                "confirmation_ttl_seconds": self.abilities.confirmation_ttl_seconds,
            },
            "auth": {
                "api_keys": {
                    key: {
                        "actor_id": cfg.actor_id,
                        "actor_type": cfg.actor_type,
                        "display_name": cfg.display_name,
                        "permissions": list(cfg.permissions),
                    }
                    for key, cfg in self.auth.api_keys.items()
                },
                "role_grants": {k: list(v) for k, v in self.auth.role_grants.items()},
            },
            "working_dir": str(self.working_dir),
            "metadata": self.metadata,
        }
