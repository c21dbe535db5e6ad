"""
Assistify Agent Core

Ability registration, authorization, dispatch and audit.
"""

from .ability import (
    Ability,
    AbilityHandler,
    CallableHandler,
    ParameterSpec,
    ParameterType,
    PERMISSION_MANAGE,
    PERMISSION_READ,
    split_ability_id,
)
from .ability_registry import AbilityRegistry
from .ability_engine import AbilityDispatcher
from .audit_logger import AuditLogger
from .auth import Actor, ActorType, AuthorizationGate, PolicyEngine
from .bootstrap import bootstrap_registry
from .confirmation import ConfirmationLevel, ConfirmationManager
from .errors import (
    AbilityError,
    AbilityNotFound,
    ConfirmationError,
    ExecutionFault,
    Forbidden,
    InvalidArguments,
    InvalidParameterType,
    MissingParameter,
    StoreError,
)
from .schema_export import SchemaExporter
from .validation import ParameterValidator

__all__ = [
    # Abilities
    "Ability",
    "AbilityHandler",
    "CallableHandler",
    "ParameterSpec",
    "ParameterType",
    "PERMISSION_MANAGE",
    "PERMISSION_READ",
    "split_ability_id",
    "AbilityRegistry",
    "bootstrap_registry",
    # Dispatch
    "AbilityDispatcher",
    "ParameterValidator",
    "SchemaExporter",
    "ConfirmationLevel",
    "ConfirmationManager",
    # Auth
    "Actor",
    "ActorType",
    "AuthorizationGate",
    "PolicyEngine",
    # Audit
    "AuditLogger",
    # Errors
    "AbilityError",
    "AbilityNotFound",
    "ConfirmationError",
    "ExecutionFault",
    "Forbidden",
    "InvalidArguments",
    "InvalidParameterType",
    "MissingParameter",
    "StoreError",
]
