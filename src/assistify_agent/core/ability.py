"""
Ability Descriptor

An ability is a named, schema-described, permission-gated store operation
that a language model can invoke through function calling.

Ability ids are namespaced as ``prefix/category/action``
(e.g. ``afw/orders/get``).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable


PERMISSION_MANAGE = "manage_store"
PERMISSION_READ = "read"

DEFAULT_CATEGORY = "store"


class ParameterType(str, Enum):
    """Declared type of an ability parameter"""
    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    NUMBER = "number"


@runtime_checkable
class AbilityHandler(Protocol):
    """Single-method contract every ability implementation satisfies."""

    def invoke(self, args: Dict[str, Any]) -> Any:
        ...


class CallableHandler:
    """Adapts a plain function ``fn(args) -> result`` to AbilityHandler"""

    def __init__(self, fn: Callable[[Dict[str, Any]], Any]):
        self.fn = fn

    def invoke(self, args: Dict[str, Any]) -> Any:
        return self.fn(args)

    def __repr__(self) -> str:
        return f"CallableHandler({getattr(self.fn, '__qualname__', self.fn)!r})"


def as_handler(value: Any) -> Optional[AbilityHandler]:
    """
    Coerce a registration-time handler value.

    Objects exposing ``invoke`` are used as-is; bare callables are wrapped.
    Anything else yields None, which makes registration fail.
    """
    if value is None:
        return None
    if callable(getattr(value, "invoke", None)):
        return value
    if callable(value):
        return CallableHandler(value)
    return None


@dataclass
class ParameterSpec:
    """Declared contract for one ability parameter"""
    type: ParameterType = ParameterType.STRING
    required: bool = False
    default: Any = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParameterSpec":
        return cls(
            type=ParameterType(data.get("type", ParameterType.STRING.value)),
            required=bool(data.get("required", False)),
            default=data.get("default"),
            description=data.get("description", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type.value,
            "required": self.required,
            "description": self.description,
        }
        if self.default is not None:
            data["default"] = self.default
        return data


@dataclass
class Ability:
    """
    A registered ability.

    ``requires_confirmation`` and ``is_destructive`` are advisory: the
    dispatcher never enforces them, the calling layer does (see
    ConfirmationManager).
    """
    id: str
    name: str
    handler: AbilityHandler
    description: str = ""
    category: str = DEFAULT_CATEGORY
    parameters: Dict[str, ParameterSpec] = field(default_factory=dict)
    permission: str = PERMISSION_MANAGE
    requires_confirmation: bool = False
    is_destructive: bool = False

    @property
    def required_parameters(self) -> List[str]:
        return [name for name, spec in self.parameters.items() if spec.required]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize metadata (the handler is never serialized)"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "parameters": {name: spec.to_dict() for name, spec in self.parameters.items()},
            "permission": self.permission,
            "requires_confirmation": self.requires_confirmation,
            "is_destructive": self.is_destructive,
        }


def split_ability_id(ability_id: str) -> tuple[str, str]:
    """
    Derive (action_category, action_type) from a namespaced ability id.

    ``afw/orders/get`` -> ("orders", "get"). Ids with fewer segments fall
    back to category "general" and the full id as action type.
    """
    parts = ability_id.split("/")
    category = parts[1] if len(parts) >= 2 else "general"
    action = parts[2] if len(parts) >= 3 else ability_id
    return category, action
