"""Argument resolution for the security client's overloaded call signatures.

Create operations accept ``(payload, [id], [options], [callback])`` where any
trailing argument may be omitted, so a callable can land in the id or options
slot and an options mapping can land in the id slot. Everything here resolves
those shapes into one canonical tuple, or raises ``InvalidArgumentError``
before anything reaches the transport.
"""
from __future__ import annotations
from typing import Any, Callable, Mapping, NamedTuple, Optional, Tuple, Type

from .entities import SecurityDocument
from .exceptions import InvalidArgumentError, MissingCallbackError


class CreateArguments(NamedTuple):
    payload: Any
    id: Optional[str]
    options: Optional[Mapping[str, Any]]
    callback: Optional[Callable]


def resolve_create_arguments(
    operation: str,
    entity_cls: Type[SecurityDocument],
    payload: Any,
    id: Any = None,
    options: Any = None,
    callback: Any = None,
) -> CreateArguments:
    """Resolve the arguments of a create call.

    Args:
        operation: Name used in error messages (e.g. ``SecurityClient.create_role``)
        entity_cls: Wrapper class accepted as payload
        payload: Wrapper instance or plain mapping
        id: Identifier, or a shifted options mapping / callback
        options: Options mapping, or a shifted callback
        callback: Completion callback

    Returns:
        CreateArguments with id a string or None, options a mapping or None
        and callback a callable or None

    Raises:
        InvalidArgumentError: If the arguments match no accepted shape
    """
    if callable(id):
        # create(payload, callback)
        if options is not None or callback is not None:
            raise InvalidArgumentError(f"{operation}: unexpected arguments after the callback")
        id, callback = None, id
    elif id is not None and not isinstance(id, str):
        if isinstance(payload, SecurityDocument) and isinstance(id, Mapping):
            # create(entity, options, [callback]): the entity carries its own id
            if options is not None:
                if callback is not None:
                    raise InvalidArgumentError(f"{operation}: unexpected arguments after the callback")
                callback = options
            id, options = None, id
        else:
            raise InvalidArgumentError(f"{operation}: cannot act on an entity without a string identifier")

    if callable(options):
        if callback is not None:
            raise InvalidArgumentError(f"{operation}: unexpected arguments after the callback")
        options, callback = None, options

    if isinstance(payload, SecurityDocument):
        if not isinstance(payload, entity_cls):
            raise InvalidArgumentError(
                f"{operation}: expected a {entity_cls.__name__} object, got {type(payload).__name__}"
            )
    elif not isinstance(payload, Mapping):
        raise InvalidArgumentError(
            f"{operation}: payload must be a {entity_cls.__name__} object or a mapping"
        )

    if id is not None and not id:
        raise InvalidArgumentError(f"{operation}: identifier cannot be empty")
    if options is not None and not isinstance(options, Mapping):
        raise InvalidArgumentError(f"{operation}: options must be a mapping")
    ensure_callback(operation, callback)

    return CreateArguments(payload, id, options, callback)


def resolve_flag_arguments(operation: str, flag: Any, callback: Any) -> Tuple[bool, Optional[Callable]]:
    """Resolve ``(flag, callback)`` where the callback may sit in the flag slot."""
    if callable(flag):
        if callback is not None:
            raise InvalidArgumentError(f"{operation}: unexpected arguments after the callback")
        flag, callback = False, flag
    if flag is not None and not isinstance(flag, bool):
        raise InvalidArgumentError(f"{operation}: hydrate must be a boolean")
    ensure_callback(operation, callback)
    return bool(flag), callback


def ensure_identifier(operation: str, id: Any) -> str:
    """Return ``id`` if it is a non-empty string.

    Entity wrappers are rejected: callers pass ``entity.id`` explicitly.
    """
    if isinstance(id, SecurityDocument):
        raise InvalidArgumentError(f"{operation}: expected an identifier, got a {type(id).__name__} object")
    if not isinstance(id, str) or not id:
        raise InvalidArgumentError(f"{operation}: cannot act on an entity without a string identifier")
    return id


def ensure_callback(operation: str, callback: Any) -> Optional[Callable]:
    if callback is not None and not callable(callback):
        raise InvalidArgumentError(f"{operation}: callback must be callable")
    return callback


def require_callback(operation: str, callback: Any) -> Callable:
    if callback is None:
        raise MissingCallbackError(operation)
    return ensure_callback(operation, callback)
