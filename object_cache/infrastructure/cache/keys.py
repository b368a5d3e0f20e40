"""
Key Derivation and Group Classification

Architecture:
    KeyBuilder
        ├── KeyScope (salt + global/local prefixes, fixed at construction)
        └── GroupClassifier (global and non-persistent group sets)

A derived key is ``salt + prefix + group + ":" + raw_key`` with every
whitespace character removed. Global groups use the global prefix so all
tenants of an installation share one record; every other group uses the
tenant-local prefix.

Stripping whitespace means ``"a b"`` and ``"ab"`` derive the same key. That
collision is accepted and kept for compatibility with existing records.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from object_cache.core.config.constants import (
    DEFAULT_GLOBAL_GROUPS,
    DEFAULT_GROUP,
    DEFAULT_NON_PERSISTENT_GROUPS,
    KEY_SEPARATOR,
)
from object_cache.core.config.settings import Settings
from object_cache.core.exceptions import ConfigurationError

_WHITESPACE = re.compile(r"\s+")


def normalize_group(group: str | None) -> str:
    """Empty or missing groups fall back to ``"default"``."""
    return group if group else DEFAULT_GROUP


def _as_group_names(groups: str | Iterable[str]) -> set[str]:
    if isinstance(groups, str):
        return {groups}
    return set(groups)


@dataclass(frozen=True)
class KeyScope:
    """
    Installation scope used to namespace derived keys.

    Attributes:
        salt: Installation-wide salt prepended to every key
        global_prefix: Prefix for global groups
        local_prefix: Prefix for every other group
    """

    salt: str = ""
    global_prefix: str = ""
    local_prefix: str = ""

    @classmethod
    def for_installation(
        cls,
        *,
        salt: str = "",
        table_prefix: str = "",
        multi_tenant: bool = False,
        tenant_id: int = 1,
        shared_user_tables: bool = False,
    ) -> "KeyScope":
        """
        Compute the prefixes for an installation.

        Multi-tenant: global groups carry no prefix, local groups are
        prefixed with the tenant id. Single installation: both use the table
        prefix, unless user tables are shared with other installations, in
        which case global groups drop it.
        """
        if multi_tenant:
            if tenant_id < 1:
                raise ConfigurationError(
                    "Tenant id must be positive for a multi-tenant installation",
                    details={"tenant_id": tenant_id},
                )
            return cls(salt=salt, global_prefix="", local_prefix=f"{tenant_id}{KEY_SEPARATOR}")

        global_prefix = "" if shared_user_tables else table_prefix
        return cls(
            salt=salt,
            global_prefix=global_prefix,
            local_prefix=f"{table_prefix}{KEY_SEPARATOR}",
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyScope":
        cache_settings = settings.cache
        return cls.for_installation(
            salt=cache_settings.CACHE_KEY_SALT,
            table_prefix=cache_settings.CACHE_TABLE_PREFIX,
            multi_tenant=cache_settings.CACHE_MULTI_TENANT,
            tenant_id=cache_settings.CACHE_TENANT_ID,
            shared_user_tables=cache_settings.CACHE_SHARED_USER_TABLES,
        )


class GroupClassifier:
    """
    Tracks which groups are global and which are non-persistent.

    Both sets start from the defaults and only ever grow: once a group is
    classified for a process it stays that way. A group in neither set is
    local and persisted.
    """

    def __init__(
        self,
        global_groups: Iterable[str] = DEFAULT_GLOBAL_GROUPS,
        non_persistent_groups: Iterable[str] = DEFAULT_NON_PERSISTENT_GROUPS,
    ):
        self._global_groups: set[str] = set(global_groups)
        self._non_persistent_groups: set[str] = set(non_persistent_groups)

    def add_global_groups(self, groups: str | Iterable[str]) -> None:
        """Mark one group or a collection of groups as global."""
        self._global_groups |= _as_group_names(groups)

    def add_non_persistent_groups(self, groups: str | Iterable[str]) -> None:
        """Mark one group or a collection of groups as process-local."""
        self._non_persistent_groups |= _as_group_names(groups)

    def is_global(self, group: str | None) -> bool:
        return normalize_group(group) in self._global_groups

    def is_non_persistent(self, group: str | None) -> bool:
        return normalize_group(group) in self._non_persistent_groups

    @property
    def global_groups(self) -> frozenset[str]:
        return frozenset(self._global_groups)

    @property
    def non_persistent_groups(self) -> frozenset[str]:
        return frozenset(self._non_persistent_groups)


class KeyBuilder:
    """
    Derives canonical storage keys.

    STAGE-1.0: Key derivation

    The result depends on the scope (fixed) and on whether the group is
    global at call time.
    """

    def __init__(self, scope: KeyScope, classifier: GroupClassifier):
        self._scope = scope
        self._classifier = classifier

    @property
    def scope(self) -> KeyScope:
        return self._scope

    def build_key(self, raw_key: Any, group: str | None = DEFAULT_GROUP) -> str:
        """
        Build the derived key for ``(raw_key, group)``.

        Example:
            >>> builder = KeyBuilder(KeyScope(salt="s", local_prefix="wp_:"), GroupClassifier())
            >>> builder.build_key("post 42", "posts")
            'swp_:posts:post42'
        """
        group = normalize_group(group)

        if self._classifier.is_global(group):
            prefix = self._scope.global_prefix
        else:
            prefix = self._scope.local_prefix

        derived = f"{self._scope.salt}{prefix}{group}{KEY_SEPARATOR}{raw_key}"
        return _WHITESPACE.sub("", derived)

    def build_keys(self, raw_keys: Iterable[Any], group: str | None = DEFAULT_GROUP) -> dict[str, Any]:
        """
        Build derived keys for several raw keys in one group.

        Returns:
            Dict mapping derived key → raw key, in input order. Raw keys that
            collide after whitespace stripping keep the last one.
        """
        return {self.build_key(raw_key, group): raw_key for raw_key in raw_keys}
