"""
Ability Error Taxonomy

Errors raised along the dispatch path:
- AbilityNotFound, Forbidden, InvalidArguments: request-shape errors,
  surfaced to the caller without an audit write
- ExecutionFault: the handler raised, recorded as a failed audit entry
- StoreError: audit persistence failure, never fails the primary operation
"""

from typing import Optional

from ..data.repos.base import StoreError


class AbilityError(Exception):
    """Base class for errors surfaced by the ability dispatcher"""

    code = "ability_error"
    http_status = 500

    def __init__(self, message: str, ability_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.ability_id = ability_id

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "ability_id": self.ability_id}


class AbilityNotFound(AbilityError):
    code = "ability_not_found"
    http_status = 404

    def __init__(self, ability_id: str):
        super().__init__(f"Ability not found: {ability_id}", ability_id)


class Forbidden(AbilityError):
    code = "ability_forbidden"
    http_status = 403

    def __init__(self, ability_id: str, permission: str):
        super().__init__("You do not have permission to execute this ability.", ability_id)
        self.permission = permission


class InvalidArguments(AbilityError):
    """Supplied arguments do not satisfy the declared parameter contract"""

    code = "invalid_arguments"
    http_status = 400

    def __init__(self, message: str, parameter: str, ability_id: Optional[str] = None):
        super().__init__(message, ability_id)
        self.parameter = parameter


class MissingParameter(InvalidArguments):
    code = "missing_parameter"

    def __init__(self, parameter: str, ability_id: Optional[str] = None):
        super().__init__(f"Missing required parameter: {parameter}", parameter, ability_id)


class InvalidParameterType(InvalidArguments):
    code = "invalid_parameter"

    def __init__(self, parameter: str, expected: str, ability_id: Optional[str] = None):
        super().__init__(
            f"Invalid type for parameter {parameter}. Expected {expected}.",
            parameter,
            ability_id,
        )
        self.expected = expected


class ExecutionFault(AbilityError):
    """The ability handler raised an unexpected exception"""

    code = "ability_error"
    http_status = 500

    def __init__(self, ability_id: str, fault: str):
        super().__init__(f"Ability execution failed: {ability_id}", ability_id)
        self.fault = fault


class ConfirmationError(Exception):
    """A pending confirmation could not be honored"""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message
