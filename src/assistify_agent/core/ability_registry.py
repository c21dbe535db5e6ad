"""
Ability Registry

Process-wide catalog mapping ability ids to their descriptors.
Populated during startup by registration hooks; read-mostly afterwards.
"""

from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional
import logging
import threading

from .ability import (
    Ability,
    ParameterSpec,
    DEFAULT_CATEGORY,
    PERMISSION_MANAGE,
    as_handler,
)

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES = {
    "orders": "Orders",
    "products": "Products",
    "customers": "Customers",
    "coupons": "Coupons",
    "analytics": "Analytics",
    "content": "Content",
    "image": "Image",
    "store": "Store",
}

RegistrationHook = Callable[["AbilityRegistry"], None]


class AbilityRegistry:
    """
    Registry for all agent abilities.

    Re-registering an id overwrites the previous entry. Iteration order is
    insertion order. Mutation is guarded by a lock so registration after
    traffic has started stays safe.
    """

    def __init__(self, categories: Optional[Mapping[str, str]] = None):
        self._abilities: Dict[str, Ability] = {}
        self._categories: Dict[str, str] = dict(DEFAULT_CATEGORIES)
        if categories:
            self._categories.update(categories)
        self._hooks: List[RegistrationHook] = []
        self._lock = threading.RLock()

    # CRUD Operations

    def register(self, ability_id: str, spec: Mapping[str, Any]) -> bool:
        """
        Register an ability.

        ``spec`` keys: name, description, category, handler (or callback),
        parameters, permission, requires_confirmation, is_destructive.

        Returns False (and leaves the registry untouched) when the name is
        empty or the handler is not invocable.
        """
        if not ability_id:
            return False

        name = spec.get("name") or ""
        handler = as_handler(spec.get("handler", spec.get("callback")))
        if not name or handler is None:
            logger.warning(f"Rejected ability registration: {ability_id} (missing name or handler)")
            return False

        try:
            parameters = self._parse_parameters(spec.get("parameters") or {})
        except (TypeError, ValueError) as e:
            logger.warning(f"Rejected ability registration: {ability_id} ({e})")
            return False

        ability = Ability(
            id=ability_id,
            name=name,
            handler=handler,
            description=spec.get("description", ""),
            category=spec.get("category") or DEFAULT_CATEGORY,
            parameters=parameters,
            permission=spec.get("permission") or PERMISSION_MANAGE,
            requires_confirmation=bool(spec.get("requires_confirmation", spec.get("requires_confirm", False))),
            is_destructive=bool(spec.get("is_destructive", False)),
        )

        with self._lock:
            replaced = ability_id in self._abilities
            self._abilities[ability_id] = ability

        logger.info(f"{'Re-registered' if replaced else 'Registered'} ability: {ability_id} ({ability.category})")
        return True

    def register_many(self, abilities: Mapping[str, Mapping[str, Any]]) -> int:
        """Register several abilities, returning how many were accepted"""
        return sum(1 for ability_id, spec in abilities.items() if self.register(ability_id, spec))

    def unregister(self, ability_id: str) -> bool:
        """Remove an ability; returns whether one was removed"""
        with self._lock:
            removed = self._abilities.pop(ability_id, None) is not None
        if removed:
            logger.info(f"Unregistered ability: {ability_id}")
        return removed

    def get(self, ability_id: str) -> Optional[Ability]:
        """Get an ability by id"""
        return self._abilities.get(ability_id)

    def has_ability(self, ability_id: str) -> bool:
        return ability_id in self._abilities

    # Query Operations

    def list(self, category: Optional[str] = None) -> List[Ability]:
        """List abilities in registration order, optionally for one category"""
        with self._lock:
            abilities = list(self._abilities.values())
        if category:
            abilities = [a for a in abilities if a.category == category]
        return abilities

    def count(self) -> int:
        return len(self._abilities)

    # Categories

    def add_category(self, key: str, label: str) -> None:
        """Add (or relabel) a category so integrations can group their abilities"""
        with self._lock:
            self._categories[key] = label

    def categories(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._categories)

    def category_label(self, key: str) -> str:
        return self._categories.get(key, key.title())

    # Registration hooks

    def add_registration_hook(self, hook: RegistrationHook) -> None:
        """Queue a callable that registers abilities when hooks are run"""
        self._hooks.append(hook)

    def run_registration_hooks(self) -> int:
        """
        Run queued registration hooks once, in order.

        A failing hook is logged and skipped so one broken integration does
        not keep the others from registering.
        """
        hooks, self._hooks = self._hooks, []
        before = self.count()
        for hook in hooks:
            try:
                hook(self)
            except Exception as e:
                logger.exception(f"Ability registration hook {getattr(hook, '__qualname__', hook)} failed: {e}")
        added = self.count() - before
        logger.info(f"Registration hooks complete: {len(hooks)} hooks, {self.count()} abilities")
        return added

    # Helpers

    @staticmethod
    def _parse_parameters(raw: Mapping[str, Any]) -> Dict[str, ParameterSpec]:
        parameters: Dict[str, ParameterSpec] = {}
        for name, value in raw.items():
            if isinstance(value, ParameterSpec):
                parameters[name] = value
            elif isinstance(value, Mapping):
                parameters[name] = ParameterSpec.from_dict(dict(value))
            else:
                raise TypeError(f"parameter {name} must be a mapping or ParameterSpec")
        return parameters

    def dump_registry(self) -> str:
        """Dump registry contents for debugging"""
        lines = [
            "Ability Registry Summary",
            "========================",
            f"Total abilities: {self.count()}",
            "",
        ]
        for key, label in self.categories().items():
            abilities = self.list(key)
            if not abilities:
                continue
            lines.append(f"{label}:")
            for ability in abilities:
                flags = []
                if ability.requires_confirmation:
                    flags.append("confirm")
                if ability.is_destructive:
                    flags.append("destructive")
                suffix = f" [{', '.join(flags)}]" if flags else ""
                lines.append(f"  {ability.id} ({ability.permission}){suffix}")
        return "\n".join(lines)

    def __iter__(self) -> Iterator[Ability]:
        return iter(self.list())

    def __len__(self) -> int:
        return self.count()
