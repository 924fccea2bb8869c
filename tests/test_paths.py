"""
Path containment tests

Tests canonicalisation of existing and missing paths, the containment
check used by includes and gosp.open(), and the guarded open itself.
"""

import os

import pytest

from gosp.lib.errors import SandboxViolation
from gosp.lib.paths import open_guarded, path_canonical, path_isWithin


class TestPathCanonical:
    """Test canonical path resolution"""

    def test_existing_directory(self, tmp_path):
        """Existing paths resolve to their real path"""
        assert path_canonical(str(tmp_path)) == os.path.realpath(tmp_path)

    def test_missing_suffix_is_kept(self, tmp_path):
        """Components that do not exist are joined back on"""
        result = path_canonical(str(tmp_path / "no" / "such" / "file.txt"))
        assert result == os.path.join(os.path.realpath(tmp_path), "no", "such", "file.txt")

    def test_dotdot_is_collapsed(self, tmp_path):
        """'..' components are removed"""
        (tmp_path / "a").mkdir()
        result = path_canonical(str(tmp_path / "a" / ".." / "b"))
        assert result == os.path.join(os.path.realpath(tmp_path), "b")

    def test_symlinked_ancestor_is_resolved(self, tmp_path):
        """A symlink in the existing part of the path is followed"""
        target = tmp_path / "target"
        target.mkdir()
        (tmp_path / "link").symlink_to(target)
        result = path_canonical(str(tmp_path / "link" / "missing.txt"))
        assert result == os.path.join(os.path.realpath(target), "missing.txt")

    def test_empty_path(self):
        """Empty input stays empty"""
        assert path_canonical("") == ""


class TestPathIsWithin:
    """Test the containment check"""

    def test_child_file(self, tmp_path):
        """A file directly in the directory is within it"""
        assert path_isWithin(str(tmp_path / "page.gosp"), str(tmp_path))

    def test_nested_child(self, tmp_path):
        """A file several levels down is within it"""
        assert path_isWithin(str(tmp_path / "a" / "b" / "c.txt"), str(tmp_path))

    def test_same_directory(self, tmp_path):
        """A directory lies within itself"""
        assert path_isWithin(str(tmp_path), str(tmp_path))

    def test_parent_escape(self, tmp_path):
        """'..' cannot climb out of the parent"""
        assert not path_isWithin(str(tmp_path / ".." / ".." / "etc" / "passwd"), str(tmp_path))

    def test_sibling_with_common_prefix(self, tmp_path):
        """/a/bc is not inside /a/b"""
        (tmp_path / "b").mkdir()
        (tmp_path / "bc").mkdir()
        assert not path_isWithin(str(tmp_path / "bc" / "x"), str(tmp_path / "b"))

    def test_symlink_escape(self, tmp_path):
        """A symlink pointing outside the parent does not count as inside"""
        base = tmp_path / "base"
        outside = tmp_path / "outside"
        base.mkdir()
        outside.mkdir()
        (base / "link").symlink_to(outside)
        assert not path_isWithin(str(base / "link" / "secret.txt"), str(base))

    def test_root_contains_everything(self):
        """Every path is within the root directory"""
        assert path_isWithin("/etc/passwd", "/")


class TestOpenGuarded:
    """Test sandboxed file opening"""

    def test_open_inside(self, tmp_path):
        """Files inside the base open"""
        (tmp_path / "data.txt").write_text("hello")
        with open_guarded("data.txt", base=str(tmp_path)) as f:
            assert f.read() == "hello"

    def test_open_outside_raises(self, tmp_path):
        """Files outside the base raise SandboxViolation"""
        base = tmp_path / "base"
        base.mkdir()
        (tmp_path / "secret.txt").write_text("secret")
        with pytest.raises(SandboxViolation) as exc_info:
            open_guarded("../secret.txt", base=str(base))
        assert exc_info.value.path == "../secret.txt"

    def test_default_base_is_cwd(self, tmp_path, monkeypatch):
        """The base defaults to the current directory"""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "here.txt").write_text("x")
        with open_guarded("here.txt") as f:
            assert f.read() == "x"
        with pytest.raises(SandboxViolation):
            open_guarded("/etc/passwd")

    def test_binary_mode(self, tmp_path):
        """Files may be opened in binary mode"""
        (tmp_path / "blob").write_bytes(b"\x00\x01")
        with open_guarded("blob", "rb", base=str(tmp_path)) as f:
            assert f.read() == b"\x00\x01"
