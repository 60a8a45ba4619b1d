"""
Unit tests for virtual object paths.
"""

import os

import pytest

from catalog.core.errors import ObjectNotFoundError
from catalog.core.media.paths import (
    build_storage_key,
    is_valid_category,
    is_valid_object_path,
    object_key_from_path,
    object_path_for_key,
    resolve_under_root,
)


class TestIsValidObjectPath:
    """Tests for the syntactic path check."""

    @pytest.mark.parametrize("path", [
        "/objects/items/0b0e6b2c-6a53-4a39-9a4e-3f8f7d1c2b10.jpg",
        "/objects/items/0b0e6b2c-6a53-4a39-9a4e-3f8f7d1c2b10/0.jpg",
        "/objects/items/abc/9.webp",
        "/objects/uploads/abc.png",
        "/objects/my_category-2/a.b.c",
    ])
    def test_accepts_well_formed_paths(self, path):
        assert is_valid_object_path(path)

    @pytest.mark.parametrize("path", [
        "/objects/items/../../etc/passwd",
        "/objects/items/..",
        "/objects/items/a\x00.jpg",
        "/other/items/a.jpg",
        "objects/items/a.jpg",
        "/objects/items",
        "/objects/items/",
        "/objects//a.jpg",
        "/objects/items//a.jpg",
        "/objects/items/./a.jpg",
        "/objects/items/a b.jpg",
        "/objects/it%2Fems/a.jpg",
        "",
    ])
    def test_rejects_malformed_paths(self, path):
        assert not is_valid_object_path(path)

    def test_rejects_non_strings(self):
        assert not is_valid_object_path(None)


class TestKeys:
    """Tests for building keys and mapping between keys and paths."""

    def test_single_image_layout(self):
        assert build_storage_key("items", "abc", "jpg") == "items/abc.jpg"

    def test_multi_image_layout(self):
        assert build_storage_key("items", "abc", "png", index=3) == "items/abc/3.png"

    def test_index_zero_is_not_single_layout(self):
        assert build_storage_key("items", "abc", "jpg", index=0) == "items/abc/0.jpg"

    def test_path_for_key(self):
        assert object_path_for_key("items/abc/0.jpg") == "/objects/items/abc/0.jpg"

    def test_key_from_path_keeps_category(self):
        assert object_key_from_path("/objects/items/abc/0.jpg") == "items/abc/0.jpg"

    def test_key_from_invalid_path_is_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            object_key_from_path("/objects/items/../secret.jpg")

    def test_category_rules(self):
        assert is_valid_category("items")
        assert not is_valid_category("items/sub")
        assert not is_valid_category("")


class TestResolveUnderRoot:
    """Tests for the physical containment check."""

    def test_resolves_inside_root(self, tmp_path):
        resolved = resolve_under_root(tmp_path, "items/abc.jpg")
        assert resolved == (tmp_path / "items" / "abc.jpg").resolve()

    @pytest.mark.parametrize("key", ["../outside.jpg", "items/../../outside.jpg", "", "."])
    def test_escaping_keys_are_rejected(self, tmp_path, key):
        with pytest.raises(ObjectNotFoundError):
            resolve_under_root(tmp_path / "root", key)

    def test_absolute_key_is_rejected(self, tmp_path):
        with pytest.raises(ObjectNotFoundError):
            resolve_under_root(tmp_path / "root", "/etc/passwd")

    def test_sibling_with_common_prefix_is_rejected(self, tmp_path):
        """uploads-old is not inside uploads, even though the string starts the same."""
        with pytest.raises(ObjectNotFoundError):
            resolve_under_root(tmp_path / "uploads", "../uploads-old/a.jpg")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlink_out_of_root_is_rejected(self, tmp_path):
        root = tmp_path / "root"
        (root / "items").mkdir(parents=True)
        outside = tmp_path / "secret.jpg"
        outside.write_bytes(b"secret")
        (root / "items" / "link.jpg").symlink_to(outside)

        with pytest.raises(ObjectNotFoundError):
            resolve_under_root(root, "items/link.jpg")
