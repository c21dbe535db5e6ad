"""
Schema Exporter

Projects the abilities an actor may invoke into function-calling
definitions for the language model.
"""

from typing import Any, Dict, List

from .ability import Ability
from .ability_registry import AbilityRegistry
from .auth.policy import AuthorizationGate
from .auth.principal import Actor


def ability_schema(ability: Ability) -> Dict[str, Any]:
    """Function definition for a single ability"""
    properties = {
        name: {"type": spec.type.value, "description": spec.description}
        for name, spec in ability.parameters.items()
    }
    return {
        "name": ability.id,
        "description": ability.description,
        "parameters": {
            "type": "object",
            "properties": properties,
            "required": ability.required_parameters,
        },
    }


class SchemaExporter:
    """Regenerated on every call; output order follows registration order."""

    def __init__(self, registry: AbilityRegistry, gate: AuthorizationGate):
        self.registry = registry
        self.gate = gate

    def export(self, actor: Actor) -> List[Dict[str, Any]]:
        return [
            ability_schema(ability)
            for ability in self.registry.list()
            if self.gate.is_allowed(actor, ability)
        ]
