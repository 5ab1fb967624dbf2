"""Tests for the file-system helpers."""

from ffsimple.fsutil import create_temp_dir, file_exists, hash_input_files


class TestHashInputFiles:
    def test_deterministic(self):
        assert hash_input_files(["a.mp4", "b.mp4"]) == hash_input_files(["a.mp4", "b.mp4"])

    def test_order_matters(self):
        assert hash_input_files(["a.mp4", "b.mp4"]) != hash_input_files(["b.mp4", "a.mp4"])

    def test_hex_digest(self):
        digest = hash_input_files(["a.mp4"])
        assert len(digest) == 64
        int(digest, 16)


class TestTempDir:
    def test_create_temp_dir(self):
        d = create_temp_dir()
        try:
            assert d.is_dir()
            assert d.name.startswith("ffsimple")
            assert file_exists(d)
        finally:
            d.rmdir()
        assert not file_exists(d)
