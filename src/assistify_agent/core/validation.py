"""
Parameter Validation

Checks supplied arguments against an ability's declared parameter contract.
Undeclared keys are ignored (open-world contract). The first failing
parameter in declaration order is reported.
"""

from numbers import Number
from typing import Any, Mapping

from .ability import Ability, ParameterType
from .errors import MissingParameter, InvalidParameterType


_BOOLEAN_LITERALS = ("true", "false", "0", "1")


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Number):
        return True
    if isinstance(value, str):
        try:
            float(value.strip())
        except ValueError:
            return False
        return bool(value.strip())
    return False


def _is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return value in (0, 1)
    if isinstance(value, str):
        return value in _BOOLEAN_LITERALS
    return False


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset, dict))


_TYPE_CHECKS = {
    ParameterType.INTEGER: _is_numeric,
    ParameterType.NUMBER: _is_numeric,
    ParameterType.STRING: lambda value: isinstance(value, str),
    ParameterType.BOOLEAN: _is_boolean,
    ParameterType.ARRAY: _is_array,
}


class ParameterValidator:
    """Validates argument maps against declared ability parameters"""

    def validate(self, ability: Ability, args: Mapping[str, Any]) -> None:
        """
        Validate ``args`` for ``ability``.

        Raises:
            MissingParameter: a required parameter is absent (or None)
            InvalidParameterType: a supplied value has the wrong type
        """
        for name, spec in ability.parameters.items():
            present = args.get(name) is not None

            if spec.required and not present:
                raise MissingParameter(name, ability.id)

            if present and not self.check_type(spec.type, args[name]):
                raise InvalidParameterType(name, spec.type.value, ability.id)

    @staticmethod
    def check_type(expected: ParameterType, value: Any) -> bool:
        check = _TYPE_CHECKS.get(expected)
        return check(value) if check else True

    def apply_defaults(self, ability: Ability, args: Mapping[str, Any]) -> dict:
        """Return a copy of ``args`` with declared defaults filled in"""
        resolved = dict(args)
        for name, spec in ability.parameters.items():
            if resolved.get(name) is None and spec.default is not None:
                resolved[name] = spec.default
        return resolved
