"""
Tests for the upload blob store.
"""

import re

import pytest

from errors import BlobNotFound, SizeExceeded, ValidationError
from storage import make_stored_name

UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


class TestStoredNames:

    def test_keeps_base_and_extension(self):
        assert re.fullmatch(rf"cat{UUID_RE}\.png", make_stored_name("cat.png"))

    def test_multiple_dots_keep_last_extension(self):
        assert re.fullmatch(rf"my\.holiday{UUID_RE}\.jpeg", make_stored_name("my.holiday.jpeg"))

    def test_directories_are_dropped(self):
        name = make_stored_name("../../etc/passwd.txt")
        assert "/" not in name
        assert name.startswith("passwd")

    def test_names_are_unique(self):
        assert make_stored_name("a.png") != make_stored_name("a.png")


class TestBlobStore:

    def test_store_writes_file(self, blob_store):
        name = blob_store.store(b"hello", "photo.jpg", max_size=10)
        assert blob_store.exists(name)
        assert blob_store.path(name).read_bytes() == b"hello"

    def test_store_at_limit_is_accepted(self, blob_store):
        name = blob_store.store(b"x" * 10, "photo.jpg", max_size=10)
        assert blob_store.exists(name)

    def test_store_over_limit_is_rejected(self, blob_store):
        with pytest.raises(SizeExceeded):
            blob_store.store(b"x" * 11, "photo.jpg", max_size=10)
        assert not blob_store.root.exists() or list(blob_store.root.iterdir()) == []

    def test_store_over_limit_uses_caller_message(self, blob_store):
        with pytest.raises(SizeExceeded) as exc_info:
            blob_store.store(b"x" * 11, "photo.jpg", max_size=10, too_big_message="Thumbnail is too big")
        assert exc_info.value.message == "Thumbnail is too big"
        assert exc_info.value.status_code == 422

    def test_check_size(self, blob_store):
        blob_store.check_size(10, 10)
        with pytest.raises(SizeExceeded):
            blob_store.check_size(11, 10)

    def test_remove(self, blob_store):
        name = blob_store.store(b"hello", "photo.jpg", max_size=10)
        blob_store.remove(name)
        assert not blob_store.exists(name)

    def test_remove_twice_reports_not_found(self, blob_store):
        name = blob_store.store(b"hello", "photo.jpg", max_size=10)
        blob_store.remove(name)
        with pytest.raises(BlobNotFound):
            blob_store.remove(name)

    @pytest.mark.parametrize("name", ["", "..", "../secret.txt", "sub/file.png"])
    def test_rejects_paths_outside_root(self, blob_store, name):
        with pytest.raises(ValidationError):
            blob_store.path(name)
