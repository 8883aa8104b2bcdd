"""Caller identity and capability checks.

Authentication is handled upstream; the service layer only sees an Actor
carrying a user id, an optional email and a PermissionChecker.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from rota_payroll.exceptions import PermissionDeniedError

WILDCARD = "*"


class PermissionChecker(Protocol):
    """Answers whether the caller may perform an action on a module."""

    def can(self, module: str, action: str) -> bool:
        ...


@dataclass(frozen=True)
class GrantedPermissions:
    """Permission set built from explicit ``module:action`` grants.

    ``module:*`` grants every action on a module; ``*`` grants everything.
    """

    grants: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, grants: Iterable[str]) -> GrantedPermissions:
        return cls(frozenset(g.strip() for g in grants if g and g.strip()))

    @classmethod
    def from_header(cls, value: str | None) -> GrantedPermissions:
        """Parse a comma-separated grant list."""
        return cls.of((value or "").split(","))

    @classmethod
    def everything(cls) -> GrantedPermissions:
        return cls(frozenset({WILDCARD}))

    def can(self, module: str, action: str) -> bool:
        return (
            WILDCARD in self.grants
            or f"{module}:{WILDCARD}" in self.grants
            or f"{module}:{action}" in self.grants
        )


@dataclass(frozen=True)
class Actor:
    """The caller of a service operation."""

    user_id: UUID | None
    permissions: PermissionChecker
    email: str | None = None

    def can(self, module: str, action: str) -> bool:
        return self.permissions.can(module, action)

    def require(self, module: str, action: str) -> None:
        """Raise PermissionDeniedError unless the actor may act."""
        if not self.permissions.can(module, action):
            raise PermissionDeniedError(module, action)
