"""Security controller client library.

This package provides a callback- and await-friendly interface to the
backend ``security`` controller: roles, profiles and users.

Architecture:
- transport.py: HTTP query transport (worker pool, error handling)
- arguments.py: Resolution of overloaded call signatures
- entities.py: Role, Profile and User wrappers
- client.py: Get/search/create/delete operations and hydration
- promises.py: Awaitable ``*_async`` mirrors of callback operations
- exceptions.py: Typed exceptions for error handling

Usage:
    from security_client.core.security import HttpQueryTransport, SecurityClient

    transport = HttpQueryTransport("http://localhost:7512", token="...")
    security = SecurityClient(transport, promise_support=True)

    # Callback style
    security.get_role("admin", lambda error, role: print(error or role.content))

    # Awaitable style
    profile = await security.get_profile_async("editor", hydrate=True)
"""
from .client import (
    SecurityClient,
    EntityKind,
    ROLE,
    PROFILE,
    USER,
    CONTROLLER,
)
from .entities import (
    SecurityDocument,
    Role,
    Profile,
    User,
)
from .exceptions import (
    SecurityError,
    InvalidArgumentError,
    MissingCallbackError,
    TransportError,
    ResponseFormatError,
)
from .arguments import (
    CreateArguments,
    resolve_create_arguments,
    resolve_flag_arguments,
)
from .promises import (
    ASYNC_SUFFIX,
    install_async_mirrors,
)
from .transport import (
    HttpQueryTransport,
    REQUEST_TIMEOUT,
)

__all__ = [
    # Client
    "SecurityClient",
    "EntityKind",
    "ROLE",
    "PROFILE",
    "USER",
    "CONTROLLER",

    # Entities
    "SecurityDocument",
    "Role",
    "Profile",
    "User",

    # Exceptions
    "SecurityError",
    "InvalidArgumentError",
    "MissingCallbackError",
    "TransportError",
    "ResponseFormatError",

    # Arguments
    "CreateArguments",
    "resolve_create_arguments",
    "resolve_flag_arguments",

    # Async mirrors
    "ASYNC_SUFFIX",
    "install_async_mirrors",

    # Transport
    "HttpQueryTransport",
    "REQUEST_TIMEOUT",
]
