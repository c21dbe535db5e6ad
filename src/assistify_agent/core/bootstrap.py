"""
Ability Bootstrap

Populates the registry during startup. Integrations contribute abilities
through registration hooks named in configuration as ``module:function``
entrypoints; each hook receives the registry and calls ``register`` /
``add_category`` on it.
"""

import importlib
import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .ability_registry import AbilityRegistry, RegistrationHook

logger = logging.getLogger(__name__)


def resolve_entrypoint(entrypoint: str) -> RegistrationHook:
    """
    Import ``module:function`` and return the callable.

    Raises:
        ValueError: malformed entrypoint or target is not callable
        ImportError / AttributeError: module or function not found
    """
    module_path, sep, func_name = entrypoint.partition(":")
    if not sep or not module_path or not func_name:
        raise ValueError(f"Invalid registration hook entrypoint: {entrypoint!r} (expected module:function)")

    module = importlib.import_module(module_path)
    func = getattr(module, func_name)
    if not callable(func):
        raise ValueError(f"Registration hook is not callable: {entrypoint}")
    return func


def bootstrap_registry(
    registry: AbilityRegistry,
    entrypoints: Iterable[str] = (),
    categories: Optional[Mapping[str, str]] = None,
    hooks: Iterable[Callable[[AbilityRegistry], None]] = (),
) -> Dict[str, int]:
    """
    Run the registration phase.

    Unresolvable entrypoints are logged and skipped.

    Returns:
        Dict with counts of hooks run, hooks skipped and abilities registered
    """
    for key, label in (categories or {}).items():
        registry.add_category(key, label)

    queued: List[Callable[[AbilityRegistry], None]] = list(hooks)
    skipped = 0
    for entrypoint in entrypoints:
        try:
            queued.append(resolve_entrypoint(entrypoint))
        except (ImportError, AttributeError, ValueError) as e:
            logger.error(f"Failed to load registration hook {entrypoint}: {e}")
            skipped += 1

    for hook in queued:
        registry.add_registration_hook(hook)
    added = registry.run_registration_hooks()

    results = {"hooks": len(queued), "skipped": skipped, "abilities": added}
    logger.info(f"Bootstrap complete: {results}")
    return results
