"""
Unit Tests for Key Derivation

Tests scope prefixes, group classification and whitespace handling of
derived keys.
"""

import pytest

from object_cache.core.config.constants import DEFAULT_GLOBAL_GROUPS, DEFAULT_NON_PERSISTENT_GROUPS
from object_cache.core.exceptions import ConfigurationError
from object_cache.infrastructure.cache.keys import (
    GroupClassifier,
    KeyBuilder,
    KeyScope,
    normalize_group,
)


def _builder(**scope_kwargs) -> KeyBuilder:
    return KeyBuilder(KeyScope.for_installation(**scope_kwargs), GroupClassifier())


@pytest.mark.unit
class TestKeyScope:
    """Test prefix computation for each installation shape."""

    def test_single_installation(self):
        """Test that both prefixes come from the table prefix."""
        scope = KeyScope.for_installation(salt="s", table_prefix="wp_")

        assert scope == KeyScope(salt="s", global_prefix="wp_", local_prefix="wp_:")

    def test_single_installation_with_shared_user_tables(self):
        """Test that shared user tables drop the global prefix."""
        scope = KeyScope.for_installation(table_prefix="wp_", shared_user_tables=True)

        assert scope.global_prefix == ""
        assert scope.local_prefix == "wp_:"

    def test_multi_tenant(self):
        """Test that local groups carry the tenant id and global groups nothing."""
        scope = KeyScope.for_installation(table_prefix="wp_", multi_tenant=True, tenant_id=7)

        assert scope.global_prefix == ""
        assert scope.local_prefix == "7:"

    @pytest.mark.parametrize("tenant_id", [0, -1])
    def test_multi_tenant_rejects_non_positive_tenant(self, tenant_id):
        """Test that a multi-tenant scope needs a real tenant id."""
        with pytest.raises(ConfigurationError):
            KeyScope.for_installation(multi_tenant=True, tenant_id=tenant_id)

    def test_from_settings(self, make_settings):
        """Test scope construction from settings."""
        settings = make_settings(CACHE_KEY_SALT="salt", CACHE_MULTI_TENANT=True, CACHE_TENANT_ID=4)

        assert KeyScope.from_settings(settings) == KeyScope(salt="salt", global_prefix="", local_prefix="4:")


@pytest.mark.unit
class TestGroupClassifier:
    """Test group classification."""

    def test_defaults(self):
        """Test the built-in group lists."""
        classifier = GroupClassifier()

        assert classifier.global_groups == frozenset(DEFAULT_GLOBAL_GROUPS)
        assert classifier.non_persistent_groups == frozenset(DEFAULT_NON_PERSISTENT_GROUPS)
        assert classifier.is_global("users")
        assert classifier.is_non_persistent("counts")
        assert not classifier.is_global("posts")
        assert not classifier.is_non_persistent("posts")

    def test_add_single_group_and_collection(self):
        """Test that both a name and a collection are accepted."""
        classifier = GroupClassifier(global_groups=(), non_persistent_groups=())

        classifier.add_global_groups("widgets")
        classifier.add_global_groups(["gadgets", "gizmos"])
        classifier.add_non_persistent_groups(("scratch",))

        assert classifier.global_groups == {"widgets", "gadgets", "gizmos"}
        assert classifier.non_persistent_groups == {"scratch"}

    def test_group_string_is_not_split_into_characters(self):
        """Test that a bare string is one group."""
        classifier = GroupClassifier(global_groups=())
        classifier.add_global_groups("abc")

        assert not classifier.is_global("a")
        assert classifier.is_global("abc")

    def test_empty_group_is_default(self):
        """Test that classification of an empty group uses "default"."""
        classifier = GroupClassifier(non_persistent_groups=("default",))

        assert classifier.is_non_persistent("")
        assert classifier.is_non_persistent(None)
        assert normalize_group("") == "default"

    def test_exposed_sets_are_read_only(self):
        """Test that callers cannot mutate the classification directly."""
        classifier = GroupClassifier()

        assert isinstance(classifier.global_groups, frozenset)


@pytest.mark.unit
class TestKeyBuilder:
    """Test derived key construction."""

    def test_local_group_uses_local_prefix(self):
        """Test the layout salt + prefix + group + ":" + key."""
        builder = _builder(salt="s", table_prefix="wp_")

        assert builder.build_key("42", "posts") == "swp_:posts:42"

    def test_global_group_uses_global_prefix(self):
        """Test that global groups use the global prefix."""
        builder = _builder(table_prefix="wp_")

        assert builder.build_key("42", "users") == "wp_users:42"

    @pytest.mark.parametrize("group", ["", None, "default"])
    def test_empty_group_falls_back_to_default(self, group):
        """Test that an empty group and "default" derive the same key."""
        builder = _builder(table_prefix="wp_")

        assert builder.build_key("k", group) == "wp_:default:k"

    def test_whitespace_is_stripped_everywhere(self):
        """Test that whitespace in any component is removed."""
        builder = _builder(salt="my salt", table_prefix="wp_")

        assert builder.build_key("post 42\n", "my\tposts") == "mysaltwp_:myposts:post42"

    def test_whitespace_variants_collide(self):
        """Test that "a b" and "ab" map to one derived key."""
        builder = _builder()

        assert builder.build_key("a b", "g") == builder.build_key("ab", "g")

    def test_non_string_keys(self):
        """Test that integer keys are rendered as text."""
        builder = _builder(table_prefix="wp_")

        assert builder.build_key(42, "posts") == "wp_:posts:42"

    def test_global_key_shared_across_tenants(self):
        """Test that a global key is identical for every tenant and a local key is not."""
        tenant_1 = _builder(multi_tenant=True, tenant_id=1)
        tenant_2 = _builder(multi_tenant=True, tenant_id=2)

        assert tenant_1.build_key("42", "users") == tenant_2.build_key("42", "users") == "users:42"
        assert tenant_1.build_key("42", "widgets") == "1:widgets:42"
        assert tenant_2.build_key("42", "widgets") == "2:widgets:42"

    def test_key_follows_classification_at_call_time(self):
        """Test that adding a global group changes its derived keys."""
        classifier = GroupClassifier()
        builder = KeyBuilder(KeyScope.for_installation(multi_tenant=True, tenant_id=3), classifier)

        assert builder.build_key("1", "widgets") == "3:widgets:1"

        classifier.add_global_groups("widgets")

        assert builder.build_key("1", "widgets") == "widgets:1"

    def test_build_keys_maps_derived_to_raw(self):
        """Test bulk derivation."""
        builder = _builder(table_prefix="wp_")

        assert builder.build_keys(["a", "b"], "posts") == {"wp_:posts:a": "a", "wp_:posts:b": "b"}
