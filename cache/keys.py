"""
Deterministic cache key derivation.

Entity keys address a single stored object ("session:abc"); call keys
address the cached result of one method invocation
("SessionController_get_session_abc"). Both are pure functions of their
inputs, so the same inputs always map to the same stored entry.
"""

from typing import Any, Iterable

from errors.exceptions import InvalidArgumentError

ENTITY_SEPARATOR = ":"
CALL_DELIMITER = "_"
NULL_LITERAL = "null"


def _require(value: str, field: str) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(
            f"{field} must be a non-empty string",
            details={"field": field},
        )


def derive_entity_key(namespace: str, entity_id: str) -> str:
    """
    Build the store key for one entity of a namespace.

    Args:
        namespace: Logical keyspace, e.g. "session"
        entity_id: Identifier unique within the namespace

    Returns:
        "<namespace>:<entity_id>"

    Raises:
        InvalidArgumentError: If either part is empty.
    """
    _require(namespace, "namespace")
    _require(entity_id, "id")
    return f"{namespace}{ENTITY_SEPARATOR}{entity_id}"


def _render(arg: Any) -> str:
    return NULL_LITERAL if arg is None else str(arg)


def derive_call_key(type_name: str, method_name: str, args: Iterable[Any] = ()) -> str:
    """
    Build the cache key for a method call.

    The type and method names are always followed by the delimiter, so a
    call without arguments ends in "_". Existing cached data depends on
    that layout; do not strip it.

    Args:
        type_name: Simple name of the class owning the method
        method_name: Name of the invoked method
        args: Positional arguments, rendered with str(); None becomes "null"

    Returns:
        "<type_name>_<method_name>_<arg1>_..._<argN>"
    """
    _require(type_name, "type_name")
    _require(method_name, "method_name")
    rendered = CALL_DELIMITER.join(_render(arg) for arg in args)
    return f"{type_name}{CALL_DELIMITER}{method_name}{CALL_DELIMITER}{rendered}"
