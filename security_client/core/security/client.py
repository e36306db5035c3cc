"""Security resource client: roles, profiles and users.

Every network-bound operation takes a completion callback receiving
``(error, result)``. ``get_*`` and ``search_*`` require one; ``create_*`` and
``delete_*`` run fire-and-forget without one and return the client so calls
can be chained. Clients built with ``promise_support=True`` also expose an
awaitable ``<operation>_async`` mirror of every operation listed in
``ASYNC_OPERATIONS``.

There is a short propagation delay between a write and its visibility in
searches: an entity that was just created may not be returned by a search
issued right after, and a deleted one may still be.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional

from .arguments import (
    ensure_callback,
    ensure_identifier,
    require_callback,
    resolve_create_arguments,
    resolve_flag_arguments,
)
from .entities import Profile, Role, SecurityDocument, User
from .exceptions import InvalidArgumentError, ResponseFormatError
from .promises import install_async_mirrors

logger = logging.getLogger(__name__)

CONTROLLER = "security"


@dataclass(frozen=True)
class EntityKind:
    """Backend vocabulary and nesting rules for one entity kind."""
    name: str
    entity_cls: type
    get_action: str
    search_action: str
    create_action: str
    delete_action: str
    replace_action: Optional[str] = None
    replace_option: Optional[str] = None
    nested_field: Optional[str] = None
    nested_kind: Optional[str] = None
    nested_many: bool = False


ROLE = EntityKind(
    "role", Role, "getRole", "searchRoles", "createRole", "deleteRole",
    replace_action="createOrReplaceRole", replace_option="replaceIfExist",
)
PROFILE = EntityKind(
    "profile", Profile, "getProfile", "searchProfiles", "createProfile", "deleteProfile",
    replace_action="createOrReplaceProfile", replace_option="updateIfExist",
    nested_field="roles", nested_kind="role", nested_many=True,
)
USER = EntityKind(
    "user", User, "getUser", "searchUsers", "createUser", "deleteUser",
    nested_field="profile", nested_kind="profile",
)
KINDS = {kind.name: kind for kind in (ROLE, PROFILE, USER)}


class _Gather:
    """Collect ``count`` callback results in order.

    Delivers ``(None, results)`` once every slot has reported, or the first
    error alone. Slots may report from any thread.
    """

    def __init__(self, count: int, callback: Callable):
        self._callback = callback
        self._results: List[Any] = [None] * count
        self._pending = count
        self._finished = False
        self._lock = threading.Lock()
        if count == 0:
            self._finished = True
            callback(None, [])

    def slot(self, index: int) -> Callable:
        return partial(self._deliver, index)

    def _deliver(self, index: int, error, result=None) -> None:
        with self._lock:
            if self._finished:
                return
            if error is None:
                self._results[index] = result
                self._pending -= 1
                if self._pending:
                    return
            self._finished = True

        if error is not None:
            self._callback(error, None)
        else:
            self._callback(None, self._results)


def _carry_version(version: Optional[int], callback: Callable) -> Callable:
    if version is None:
        return callback

    def _deliver(error, entity=None):
        if entity is not None:
            entity.version = version
        callback(error, entity)

    return _deliver


def _document(response: Mapping[str, Any], action: str):
    """Return ``(_id, _source, _version)`` from a get/create response."""
    try:
        result = response["result"]
        return result["_id"], result.get("_source") or {}, result.get("_version")
    except (KeyError, TypeError, AttributeError) as exc:
        raise ResponseFormatError(f"{action}: malformed response ({exc!r})") from exc


class SecurityClient:
    """Client for the backend ``security`` controller.

    Usage:
        client = SecurityClient(transport, promise_support=True)
        client.get_role("admin", lambda error, role: ...)
        profile = await client.get_profile_async("editor", hydrate=True)
    """

    ASYNC_OPERATIONS = (
        "get_role",
        "search_roles",
        "create_role",
        "delete_role",
        "get_profile",
        "search_profiles",
        "create_profile",
        "delete_profile",
        "get_user",
        "search_users",
        "create_user",
        "delete_user",
    )

    def __init__(self, transport, *, promise_support: bool = False):
        """Bind the client to a query transport.

        Args:
            transport: Object exposing ``query(descriptor, body, options, callback)``
            promise_support: Install ``<operation>_async`` awaitable mirrors
        """
        self.transport = transport
        self.promise_support = promise_support
        if promise_support:
            install_async_mirrors(self, self.ASYNC_OPERATIONS)

    @classmethod
    def from_settings(cls, config=None) -> "SecurityClient":
        """Build a client over ``HttpQueryTransport`` from application settings."""
        from ...config.settings import load_settings
        from .transport import HttpQueryTransport

        config = config or load_settings()
        transport = HttpQueryTransport(
            config.api_url,
            token=config.api_token,
            query_path=config.query_path,
            timeout=config.request_timeout,
            max_workers=config.max_workers,
        )
        return cls(transport, promise_support=config.promise_support)

    # ─────────────────────────────────────────────────────────────────────────
    # Roles
    # ─────────────────────────────────────────────────────────────────────────
    def get_role(self, id: str, callback: Optional[Callable] = None) -> None:
        """Retrieve a single role by its unique ID.

        Args:
            id: Role ID
            callback: Receives ``(error, Role)``

        Raises:
            MissingCallbackError: If no callback is given
        """
        self._get(ROLE, "SecurityClient.get_role", id, False, callback)

    def search_roles(self, filters: Optional[Mapping[str, Any]], callback: Optional[Callable] = None) -> None:
        """Search roles matching ``filters``.

        Args:
            filters: Search body, e.g. ``{"indexes": [...], "from": 0, "size": 10}``
            callback: Receives ``(error, {"total": int, "documents": [Role]})``
        """
        self._search(ROLE, "SecurityClient.search_roles", filters, False, callback)

    def create_role(self, role, id=None, options=None, callback=None):
        """Create a role.

        ``options["replaceIfExist"]`` replaces an existing role with the same
        ID instead of failing.

        Args:
            role: ``Role`` object or plain mapping
            id: Role ID (ignored for ``Role`` objects, which carry their own)
            options: Optional arguments
            callback: Receives ``(error, Role)``

        Returns:
            The client when no callback is given, None otherwise
        """
        return self._create(ROLE, "SecurityClient.create_role", role, id, options, callback)

    def delete_role(self, id: str, callback: Optional[Callable] = None):
        """Delete a role; the callback receives the deleted ID."""
        return self._delete(ROLE, "SecurityClient.delete_role", id, callback)

    def role_factory(self, id: str, content: Optional[Mapping[str, Any]] = None) -> Role:
        """Instantiate a ``Role`` bound to this client without any network call."""
        return Role(self, id, content)

    # ─────────────────────────────────────────────────────────────────────────
    # Profiles
    # ─────────────────────────────────────────────────────────────────────────
    def get_profile(self, id: str, hydrate=False, callback: Optional[Callable] = None) -> None:
        """Retrieve a single profile by its unique ID.

        Args:
            id: Profile ID
            hydrate: Replace role IDs by ``Role`` objects (fetched when needed)
            callback: Receives ``(error, Profile)``
        """
        hydrate, callback = resolve_flag_arguments("SecurityClient.get_profile", hydrate, callback)
        self._get(PROFILE, "SecurityClient.get_profile", id, hydrate, callback)

    def search_profiles(self, filters: Optional[Mapping[str, Any]], hydrate=False, callback: Optional[Callable] = None) -> None:
        """Search profiles matching ``filters``.

        Args:
            filters: Search body, e.g. ``{"roles": [...], "from": 0, "size": 10}``
            hydrate: Profiles carry ``Role`` objects instead of role IDs
            callback: Receives ``(error, {"total": int, "documents": [Profile]})``
        """
        hydrate, callback = resolve_flag_arguments("SecurityClient.search_profiles", hydrate, callback)
        self._search(PROFILE, "SecurityClient.search_profiles", filters, hydrate, callback)

    def create_profile(self, profile, id=None, options=None, callback=None):
        """Create a profile.

        ``options["updateIfExist"]`` replaces an existing profile with the
        same ID instead of failing. The delivered profile carries the
        backend version when one is returned.
        """
        return self._create(PROFILE, "SecurityClient.create_profile", profile, id, options, callback)

    def delete_profile(self, id: str, callback: Optional[Callable] = None):
        return self._delete(PROFILE, "SecurityClient.delete_profile", id, callback)

    def profile_factory(self, id: str, content: Optional[Mapping[str, Any]] = None) -> Profile:
        """Instantiate a ``Profile`` bound to this client without any network call."""
        return Profile(self, id, content)

    # ─────────────────────────────────────────────────────────────────────────
    # Users
    # ─────────────────────────────────────────────────────────────────────────
    def get_user(self, id: str, hydrate=False, callback: Optional[Callable] = None) -> None:
        """Retrieve a single user; ``hydrate`` materializes its profile and roles."""
        hydrate, callback = resolve_flag_arguments("SecurityClient.get_user", hydrate, callback)
        self._get(USER, "SecurityClient.get_user", id, hydrate, callback)

    def search_users(self, filters: Optional[Mapping[str, Any]], hydrate=False, callback: Optional[Callable] = None) -> None:
        """Search users; ``hydrate`` gives each user a ``Profile`` object."""
        hydrate, callback = resolve_flag_arguments("SecurityClient.search_users", hydrate, callback)
        self._search(USER, "SecurityClient.search_users", filters, hydrate, callback)

    def create_user(self, user, id=None, options=None, callback=None):
        """Create a user. Users have no replace variant."""
        return self._create(USER, "SecurityClient.create_user", user, id, options, callback)

    def delete_user(self, id: str, callback: Optional[Callable] = None):
        return self._delete(USER, "SecurityClient.delete_user", id, callback)

    def user_factory(self, id: str, content: Optional[Mapping[str, Any]] = None) -> User:
        """Instantiate a ``User`` bound to this client without any network call."""
        return User(self, id, content)

    # ─────────────────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────────────────
    def _dispatch(self, action: str, body: Dict[str, Any], options, callback) -> None:
        logger.debug("[security] %s _id=%s", action, body.get("_id"))
        self.transport.query({"controller": CONTROLLER, "action": action}, body, options, callback)

    def _get(self, kind: EntityKind, operation: str, id, hydrate: bool, callback) -> None:
        callback = require_callback(operation, callback)
        id = ensure_identifier(operation, id)
        self._fetch(kind, id, hydrate, callback)

    def _fetch(self, kind: EntityKind, id: str, hydrate: bool, callback: Callable) -> None:
        def _on_response(error, response=None):
            if error is not None:
                return callback(error, None)
            try:
                doc_id, source, version = _document(response, kind.get_action)
            except ResponseFormatError as exc:
                return callback(exc, None)
            self._materialize(kind, doc_id, source, hydrate, _carry_version(version, callback))

        self._dispatch(kind.get_action, {"_id": id}, None, _on_response)

    def _search(self, kind: EntityKind, operation: str, filters, hydrate: bool, callback) -> None:
        callback = require_callback(operation, callback)
        if filters is not None and not isinstance(filters, Mapping):
            raise InvalidArgumentError(f"{operation}: filters must be a mapping")

        body = dict(filters or {})
        if kind.nested_field is not None:
            body["hydrate"] = hydrate

        def _on_response(error, response=None):
            if error is not None:
                return callback(error, None)
            try:
                result = response["result"]
                total = result["total"]
                hits = [(hit["_id"], hit.get("_source")) for hit in result["hits"]]
            except (KeyError, TypeError, AttributeError) as exc:
                return callback(ResponseFormatError(f"{kind.search_action}: malformed response ({exc!r})"), None)

            def _on_documents(error, documents=None):
                if error is not None:
                    return callback(error, None)
                callback(None, {"total": total, "documents": documents})

            gather = _Gather(len(hits), _on_documents)
            for index, (doc_id, source) in enumerate(hits):
                self._materialize(kind, doc_id, source, hydrate, gather.slot(index))

        self._dispatch(kind.search_action, {"body": body}, None, _on_response)

    def _create(self, kind: EntityKind, operation: str, payload, id, options, callback):
        args = resolve_create_arguments(operation, kind.entity_cls, payload, id, options, callback)

        action = kind.create_action
        if args.options and kind.replace_option and args.options.get(kind.replace_option):
            action = kind.replace_action

        if isinstance(args.payload, SecurityDocument):
            if args.id is not None and args.id != args.payload.id:
                logger.debug("[security] %s: ignoring id %r, object carries %r", operation, args.id, args.payload.id)
            body = args.payload.to_json()
        else:
            body = {"body": dict(args.payload)}
            if args.id is not None:
                body["_id"] = args.id

        if args.callback is None:
            self._dispatch(action, body, args.options, None)
            return self

        callback = args.callback

        def _on_response(error, response=None):
            if error is not None:
                return callback(error, None)
            try:
                doc_id, source, version = _document(response, action)
            except ResponseFormatError as exc:
                return callback(exc, None)
            self._materialize(kind, doc_id, source, False, _carry_version(version, callback))

        self._dispatch(action, body, args.options, _on_response)
        return None

    def _delete(self, kind: EntityKind, operation: str, id, callback):
        id = ensure_identifier(operation, id)
        callback = ensure_callback(operation, callback)

        if callback is None:
            self._dispatch(kind.delete_action, {"_id": id}, None, None)
            return self

        def _on_response(error, response=None):
            if error is not None:
                return callback(error, None)
            try:
                deleted = response["result"]["_id"]
            except (KeyError, TypeError) as exc:
                return callback(ResponseFormatError(f"{kind.delete_action}: malformed response ({exc!r})"), None)
            callback(None, deleted)

        self._dispatch(kind.delete_action, {"_id": id}, None, _on_response)
        return None

    # ─────────────────────────────────────────────────────────────────────────
    # Hydration
    # ─────────────────────────────────────────────────────────────────────────
    def _materialize(self, kind: EntityKind, doc_id, source, hydrate: bool, callback: Callable) -> None:
        """Build the wrapper for one backend document.

        Nested references are reduced to bare IDs unless ``hydrate`` is set,
        in which case every one of them becomes a wrapper: embedded
        ``{_id, _source}`` documents are wrapped in place and bare IDs are
        fetched.
        """
        if source is not None and not isinstance(source, Mapping):
            return callback(ResponseFormatError(f"{kind.name} {doc_id!r}: '_source' must be an object"), None)
        source = dict(source or {})
        field = kind.nested_field
        if field is None or source.get(field) is None:
            return self._build(kind, doc_id, source, callback)

        references = source[field] if kind.nested_many else [source[field]]
        if not isinstance(references, list):
            return callback(ResponseFormatError(f"{kind.name} {doc_id!r}: '{field}' must be a list"), None)

        if not hydrate:
            try:
                ids = [self._reference_id(kind, reference) for reference in references]
            except ResponseFormatError as exc:
                return callback(exc, None)
            source[field] = ids if kind.nested_many else ids[0]
            return self._build(kind, doc_id, source, callback)

        def _on_nested(error, entities=None):
            if error is not None:
                return callback(error, None)
            source[field] = entities if kind.nested_many else entities[0]
            self._build(kind, doc_id, source, callback)

        nested = KINDS[kind.nested_kind]
        gather = _Gather(len(references), _on_nested)
        for index, reference in enumerate(references):
            self._hydrate_reference(nested, reference, gather.slot(index))

    def _hydrate_reference(self, kind: EntityKind, reference, callback: Callable) -> None:
        if isinstance(reference, str) and reference:
            self._fetch(kind, reference, True, callback)
        elif isinstance(reference, Mapping) and reference.get("_id"):
            self._materialize(kind, reference["_id"], reference.get("_source"), True, callback)
        else:
            callback(ResponseFormatError(f"unexpected {kind.name} reference: {reference!r}"), None)

    @staticmethod
    def _reference_id(kind: EntityKind, reference) -> str:
        if isinstance(reference, str) and reference:
            return reference
        if isinstance(reference, Mapping) and isinstance(reference.get("_id"), str):
            return reference["_id"]
        raise ResponseFormatError(f"{kind.name}: unexpected {kind.nested_kind} reference {reference!r}")

    def _build(self, kind: EntityKind, doc_id, source: Dict[str, Any], callback: Callable) -> None:
        try:
            entity = kind.entity_cls(self, doc_id, source)
        except InvalidArgumentError as exc:
            return callback(ResponseFormatError(f"{kind.name} {doc_id!r}: {exc}"), None)
        callback(None, entity)
