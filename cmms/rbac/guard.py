"""Client-side capability checks for UI rendering.

The permission set is fetched once per session from ``GET /rbac/me`` and
cached; checks never recompute roles locally. This only decides what to
show. The server-side ``RequirePermission`` gate is what enforces access.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

import httpx

from cmms.core.config import settings
from cmms.rbac.catalog import PermissionName

logger = logging.getLogger("cmms.rbac")


@dataclass(frozen=True)
class ClientAuthorization:
    """Snapshot of what the current session may do."""

    permissions: FrozenSet[str] = frozenset()
    roles: FrozenSet[str] = frozenset()
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.can(PermissionName.SYSTEM_ADMIN)

    def can(self, permission) -> bool:
        return str(permission) in self.permissions

    def can_any(self, permissions: Iterable) -> bool:
        return any(self.can(p) for p in permissions)

    def can_all(self, permissions: Iterable) -> bool:
        return all(self.can(p) for p in permissions)

    def has_role(self, role_name) -> bool:
        return str(role_name) in self.roles

    @classmethod
    def anonymous(cls) -> "ClientAuthorization":
        return cls()

    @classmethod
    def from_payload(cls, payload: dict) -> "ClientAuthorization":
        return cls(
            permissions=frozenset(payload.get("permissions") or ()),
            roles=frozenset(payload.get("roles") or ()),
            user_id=payload.get("user_id"),
        )


class AuthorizationClient:
    """Fetches and caches the session's permissions from the API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._client = httpx.Client(
            base_url=base_url or settings.API_BASE_URL,
            transport=transport,
            timeout=timeout,
        )
        self._cache: Dict[str, ClientAuthorization] = {}

    def authorization(self, token: Optional[str]) -> ClientAuthorization:
        """Cached snapshot for ``token``; fetched on first use.

        Only a 200 or a 401 answer is cached. A network error or any other
        status yields an anonymous snapshot and is retried next time.
        """
        if not token:
            return ClientAuthorization.anonymous()
        if token in self._cache:
            return self._cache[token]
        snapshot = self._fetch(token)
        if snapshot is None:
            return ClientAuthorization.anonymous()
        self._cache[token] = snapshot
        return snapshot

    def refresh(self, token: Optional[str] = None) -> None:
        """Drop the cached snapshot for one token, or all of them."""
        if token is None:
            self._cache.clear()
        else:
            self._cache.pop(token, None)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _fetch(self, token: str) -> Optional[ClientAuthorization]:
        """Snapshot from the API, or None when the outcome should not be cached."""
        try:
            resp = self._client.get("/rbac/me", headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            logger.warning("Could not load permissions: %s", e)
            return None

        if resp.status_code == 401:
            return ClientAuthorization.anonymous()
        if resp.status_code != 200:
            logger.warning("Unexpected status %s loading permissions", resp.status_code)
            return None
        return ClientAuthorization.from_payload(resp.json())


class PermissionGuard:
    """Render predicate: show a control when the session holds the permissions."""

    def __init__(self, permissions: Iterable, require_all: bool = False):
        if isinstance(permissions, str):
            raise TypeError("permissions must be a list of names, not a single string")
        self.permissions = tuple(str(p) for p in permissions)
        self.require_all = require_all

    def allows(self, authorization: ClientAuthorization) -> bool:
        if self.require_all:
            return authorization.can_all(self.permissions)
        return authorization.can_any(self.permissions)

    def render(self, authorization: ClientAuthorization, content, fallback=None):
        """``content`` when allowed, else ``fallback``."""
        return content if self.allows(authorization) else fallback
