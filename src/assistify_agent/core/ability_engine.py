"""
Ability Dispatcher

Runs a single ability call end to end:
lookup -> authorization -> validation -> invocation -> audit.

Request-shape failures (not found, forbidden, invalid arguments) are
raised before anything is written to the audit log. Once the handler
has been invoked exactly one terminal audit record is written.
"""

from typing import Any, Mapping, Optional
import logging

from ..data.models.audit import AuditStatus
from ..data.repos.base import StoreError
from .ability import Ability
from .ability_registry import AbilityRegistry
from .audit_logger import AuditLogger
from .auth.policy import AuthorizationGate
from .auth.principal import Actor
from .errors import AbilityNotFound, ExecutionFault
from .validation import ParameterValidator

logger = logging.getLogger(__name__)


class AbilityDispatcher:
    """
    Executes registered abilities on behalf of an actor.

    The ``requires_confirmation`` / ``is_destructive`` flags are not
    enforced here; callers that honor them go through ConfirmationManager.
    """

    def __init__(
        self,
        registry: AbilityRegistry,
        audit: Optional[AuditLogger] = None,
        gate: Optional[AuthorizationGate] = None,
        validator: Optional[ParameterValidator] = None,
    ):
        self.registry = registry
        self.audit = audit
        self.gate = gate or AuthorizationGate()
        self.validator = validator or ParameterValidator()

    def resolve(self, ability_id: str, actor: Actor) -> Ability:
        """Look up an ability and authorize ``actor`` for it"""
        ability = self.registry.get(ability_id)
        if ability is None:
            raise AbilityNotFound(ability_id)
        self.gate.authorize(actor, ability)
        return ability

    def execute(self, ability_id: str, args: Optional[Mapping[str, Any]], actor: Actor) -> Any:
        """
        Execute an ability.

        Returns:
            Whatever the handler returned. Application-level error payloads
            returned by a handler are passed through as data.

        Raises:
            AbilityNotFound: no ability registered under ``ability_id``
            Forbidden: ``actor`` lacks the ability's permission
            InvalidArguments: ``args`` violate the parameter contract
            ExecutionFault: the handler raised
        """
        ability = self.resolve(ability_id, actor)

        supplied = dict(args or {})
        self.validator.validate(ability, supplied)
        call_args = self.validator.apply_defaults(ability, supplied)

        logger.info(f"Executing ability {ability_id} for actor {actor.actor_id} ({actor.actor_type.value})")

        try:
            result = ability.handler.invoke(call_args)
        except Exception as e:
            logger.exception(f"Error executing ability {ability_id}: {e}")
            self._record(ability, supplied, str(e), AuditStatus.FAILED, actor)
            raise ExecutionFault(ability_id, str(e)) from e

        self._record(ability, supplied, result, AuditStatus.SUCCESS, actor)
        return result

    def _record(
        self,
        ability: Ability,
        args: Mapping[str, Any],
        result: Any,
        status: AuditStatus,
        actor: Actor,
    ) -> Optional[int]:
        """Best-effort audit write; store failures never fail the dispatch"""
        if self.audit is None:
            return None
        try:
            return self.audit.log_ability(ability.id, dict(args), result, status, actor)
        except StoreError as e:
            logger.warning(f"Audit write failed for {ability.id} ({status.value}): {e}")
            return None
