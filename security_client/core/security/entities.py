"""Role, profile and user wrappers returned by the security client."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from .exceptions import InvalidArgumentError


class SecurityDocument(ABC):
    """Base wrapper pairing an identifier with its backend content.

    Wrappers are bound to the ``SecurityClient`` that built them so that
    ``save`` and ``delete`` can be called directly on the object. Concrete
    kinds set ``kind`` and implement ``save``.
    """

    kind = "document"

    def __init__(self, security, id: str, content: Optional[Mapping[str, Any]] = None):
        if not id or not isinstance(id, str):
            raise InvalidArgumentError(f"{type(self).__name__}: cannot initialize without a string ID")
        self.security = security
        self.id = id
        self.content: Dict[str, Any] = {}
        self.version: Optional[int] = None
        self.set_content(content or {})

    def set_content(self, content: Mapping[str, Any]) -> "SecurityDocument":
        """Replace the wrapper content."""
        if not isinstance(content, Mapping):
            raise InvalidArgumentError(f"{type(self).__name__}.set_content: content must be a mapping")
        self.content = dict(content)
        return self

    def serialize_content(self) -> Dict[str, Any]:
        return dict(self.content)

    def to_json(self) -> Dict[str, Any]:
        """Transport-ready document: ``{"_id": id, "body": content}``."""
        return {"_id": self.id, "body": self.serialize_content()}

    @abstractmethod
    def save(self, callback=None):
        """Create or replace this entity on the backend."""

    def delete(self, callback=None):
        """Delete this entity on the backend."""
        operation = getattr(self.security, f"delete_{self.kind}")
        return operation(self.id, callback)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, content={self.content!r})"


class Role(SecurityDocument):
    """A role: a named set of access rules."""

    kind = "role"

    def save(self, callback=None):
        """Create or replace this role on the backend."""
        return self.security.create_role(self, {"replaceIfExist": True}, callback)


def _reference_id(reference: Union[SecurityDocument, str]) -> str:
    if isinstance(reference, SecurityDocument):
        return reference.id
    return reference


class Profile(SecurityDocument):
    """A profile: an ordered list of roles.

    ``roles`` holds either role identifiers or ``Role`` wrappers, never both.
    """

    kind = "profile"

    def __init__(self, security, id: str, content: Optional[Mapping[str, Any]] = None):
        self.roles: List[Union[Role, str]] = []
        self.has_roles = False
        super().__init__(security, id, content)

    def set_content(self, content: Mapping[str, Any]) -> "Profile":
        if not isinstance(content, Mapping):
            raise InvalidArgumentError("Profile.set_content: content must be a mapping")
        content = dict(content)
        if "roles" in content:
            roles = content.pop("roles")
            self.set_roles([] if roles is None else roles)
        else:
            self.roles = []
            self.has_roles = False
        self.content = content
        return self

    def set_roles(self, roles) -> "Profile":
        """Replace the profile roles with a list of ids or ``Role`` objects."""
        if not isinstance(roles, (list, tuple)):
            raise InvalidArgumentError("Profile.set_roles: roles must be a list of role IDs or Role objects")
        roles = list(roles)
        wrapped = [isinstance(role, Role) for role in roles]
        if any(wrapped) and not all(wrapped):
            raise InvalidArgumentError("Profile.set_roles: cannot mix role IDs and Role objects")
        if not all(wrapped) and not all(isinstance(role, str) and role for role in roles):
            raise InvalidArgumentError("Profile.set_roles: roles must be role IDs or Role objects")
        self.roles = roles
        self.has_roles = True
        return self

    def add_role(self, role: Union[Role, str]) -> "Profile":
        """Append a role, keeping the list homogeneous."""
        return self.set_roles(self.roles + [role])

    @property
    def is_hydrated(self) -> bool:
        return bool(self.roles) and isinstance(self.roles[0], Role)

    def role_ids(self) -> List[str]:
        return [_reference_id(role) for role in self.roles]

    def serialize_content(self) -> Dict[str, Any]:
        body = dict(self.content)
        if self.has_roles:
            body["roles"] = self.role_ids()
        return body

    def save(self, callback=None):
        """Create or update this profile on the backend."""
        return self.security.create_profile(self, {"updateIfExist": True}, callback)


class User(SecurityDocument):
    """A user and the profile granting its rights."""

    kind = "user"

    def __init__(self, security, id: str, content: Optional[Mapping[str, Any]] = None):
        self.profile: Union[Profile, str, None] = None
        super().__init__(security, id, content)

    def set_content(self, content: Mapping[str, Any]) -> "User":
        if not isinstance(content, Mapping):
            raise InvalidArgumentError("User.set_content: content must be a mapping")
        content = dict(content)
        self.set_profile(content.pop("profile", None))
        self.content = content
        return self

    def set_profile(self, profile: Union[Profile, str, None]) -> "User":
        if profile is not None and not isinstance(profile, Profile):
            if not isinstance(profile, str) or not profile:
                raise InvalidArgumentError("User.set_profile: profile must be a profile ID or a Profile object")
        self.profile = profile
        return self

    @property
    def is_hydrated(self) -> bool:
        return isinstance(self.profile, Profile)

    def profile_id(self) -> Optional[str]:
        if self.profile is None:
            return None
        return _reference_id(self.profile)

    def serialize_content(self) -> Dict[str, Any]:
        body = dict(self.content)
        if self.profile is not None:
            body["profile"] = self.profile_id()
        return body

    def save(self, callback=None):
        """Create this user on the backend."""
        return self.security.create_user(self, callback)
