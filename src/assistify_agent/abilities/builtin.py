"""
Built-in Abilities

Store-agnostic abilities every deployment has. Store integrations add
their own through further registration hooks.
"""

from typing import Any, Dict

from ..core.ability import PERMISSION_READ
from ..core.ability_registry import AbilityRegistry


class ListAbilities:
    """Describes the catalog so the model can tell users what it can do"""

    def __init__(self, registry: AbilityRegistry):
        self.registry = registry

    def invoke(self, args: Dict[str, Any]) -> Dict[str, Any]:
        category = args.get("category")
        abilities = self.registry.list(category or None)
        return {
            "count": len(abilities),
            "abilities": [
                {
                    "id": a.id,
                    "name": a.name,
                    "category": self.registry.category_label(a.category),
                    "requires_confirmation": a.requires_confirmation,
                }
                for a in abilities
            ],
        }


def register(registry: AbilityRegistry) -> None:
    registry.register(
        "afw/store/list-abilities",
        {
            "name": "List Abilities",
            "description": "List the store actions the assistant can perform, optionally for one category.",
            "category": "store",
            "handler": ListAbilities(registry),
            "permission": PERMISSION_READ,
            "parameters": {
                "category": {
                    "type": "string",
                    "required": False,
                    "description": "Category key (orders, products, customers, ...)",
                },
            },
        },
    )
