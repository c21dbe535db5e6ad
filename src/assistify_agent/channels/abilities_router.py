"""
Abilities Router

FastAPI router used by the agent orchestration layer:
- function-calling schema for the calling actor
- ability dispatch (opening a confirmation for flagged abilities)
- confirmation answer / cancellation
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..core.ability_engine import AbilityDispatcher
from ..core.auth.principal import Actor
from ..core.confirmation import ConfirmationManager
from ..core.errors import AbilityError, ConfirmationError
from ..core.schema_export import SchemaExporter

logger = logging.getLogger(__name__)


# Request models
class ExecuteRequest(BaseModel):
    ability_id: str
    params: Dict[str, Any] = Field(default_factory=dict)


class ConfirmRequest(BaseModel):
    token: str
    code: str = ""


class CancelRequest(BaseModel):
    token: str


CONFIRMATION_STATUS = {
    "confirmation_expired": 410,
    "confirmation_invalid_user": 403,
    "confirmation_code_invalid": 400,
}


def _ability_error(e: AbilityError) -> HTTPException:
    return HTTPException(status_code=e.http_status, detail=e.to_dict())


def create_abilities_router(
    dispatcher: AbilityDispatcher,
    exporter: SchemaExporter,
    get_actor: Callable[..., Actor],
    confirmations: Optional[ConfirmationManager] = None,
) -> APIRouter:
    """
    Create abilities router with dependencies.

    Args:
        dispatcher: Executes abilities (owns registry and gate)
        exporter: Builds the actor-scoped function schema
        get_actor: FastAPI dependency resolving the calling actor
        confirmations: Enables the confirmation flow for flagged abilities
    """
    router = APIRouter(prefix="/abilities", tags=["abilities"])
    registry = dispatcher.registry
    gate = dispatcher.gate

    @router.get("")
    def list_abilities(actor: Actor = Depends(get_actor)) -> Dict[str, Any]:
        """Abilities the actor may invoke, with category labels."""
        abilities = [
            {**ability.to_dict(), "category_label": registry.category_label(ability.category)}
            for ability in registry.list()
            if gate.is_allowed(actor, ability)
        ]
        return {"categories": registry.categories(), "abilities": abilities}

    @router.get("/schema")
    def ability_schema(actor: Actor = Depends(get_actor)) -> list[Dict[str, Any]]:
        """Function-calling definitions for the actor."""
        return exporter.export(actor)

    @router.post("/execute")
    def execute_ability(request: ExecuteRequest, actor: Actor = Depends(get_actor)) -> Dict[str, Any]:
        """Dispatch one ability call."""
        try:
            if confirmations is not None:
                ability = dispatcher.resolve(request.ability_id, actor)
                if confirmations.level_for(ability) is not None:
                    return {"success": True, **confirmations.create(request.ability_id, request.params, actor)}

            result = dispatcher.execute(request.ability_id, request.params, actor)
        except AbilityError as e:
            raise _ability_error(e)

        return {"success": True, "result": result}

    @router.post("/confirm")
    def confirm_action(request: ConfirmRequest, actor: Actor = Depends(get_actor)) -> Dict[str, Any]:
        """Execute a pending confirmation."""
        if confirmations is None:
            raise HTTPException(status_code=404, detail="Confirmations are disabled")
        try:
            result = confirmations.confirm(request.token, actor, request.code)
        except ConfirmationError as e:
            raise HTTPException(
                status_code=CONFIRMATION_STATUS.get(e.code, 400),
                detail={"code": e.code, "message": e.message},
            )
        except AbilityError as e:
            raise _ability_error(e)

        return {"success": True, "result": result}

    @router.post("/cancel")
    def cancel_action(request: CancelRequest, actor: Actor = Depends(get_actor)) -> Dict[str, Any]:
        """Cancel a pending confirmation."""
        if confirmations is None:
            raise HTTPException(status_code=404, detail="Confirmations are disabled")
        return {"success": confirmations.cancel(request.token, actor)}

    return router
