"""Tests for the installation directory writer."""

import pytest

from provisioning.materializer import Materializer
from provisioning.models import UnsafeSkillNameError

DOC = "---\nname: react\nversion: 2.1.0\nlast_updated: 2025-01-01\n---\n\n# React\n"


class TestInstall:
    def test_writes_document_verbatim(self, install_dir):
        target = Materializer(install_dir).install("react", DOC)
        assert target == install_dir / "react"
        assert (target / "SKILL.md").read_text() == DOC

    def test_creates_install_path(self, tmp_path):
        materializer = Materializer(tmp_path / "deep" / "skills")
        materializer.install("react", DOC)
        assert (tmp_path / "deep" / "skills" / "react" / "SKILL.md").is_file()

    def test_reinstall_overwrites(self, install_dir):
        materializer = Materializer(install_dir)
        materializer.install("react", DOC)
        materializer.install("react", "# v2")
        assert (install_dir / "react" / "SKILL.md").read_text() == "# v2"

    def test_resources_written_flat(self, install_dir):
        target = Materializer(install_dir).install("react", DOC, {"hooks.md": "# hooks", "../escape.md": "x"})
        assert (target / "resources" / "hooks.md").read_text() == "# hooks"
        assert (target / "resources" / "escape.md").is_file()
        assert not (install_dir / "escape.md").exists()

    @pytest.mark.parametrize("name", ["", ".", "..", "../evil", "a/b", "a\\b"])
    def test_unsafe_names_rejected(self, install_dir, name):
        with pytest.raises(UnsafeSkillNameError):
            Materializer(install_dir).install(name, DOC)


class TestUninstall:
    def test_removes_directory(self, install_dir, installed_skill):
        installed_skill("react")
        assert Materializer(install_dir).uninstall("react") is True
        assert not (install_dir / "react").exists()

    def test_missing_is_noop(self, install_dir):
        assert Materializer(install_dir).uninstall("react") is False

    def test_unsafe_name(self, install_dir):
        with pytest.raises(UnsafeSkillNameError):
            Materializer(install_dir).uninstall("..")


class TestDiscovery:
    def test_reads_frontmatter(self, install_dir):
        Materializer(install_dir).install("react", DOC)
        [skill] = Materializer(install_dir).list_installed()
        assert skill.name == "react"
        assert skill.version == "2.1.0"
        assert skill.last_updated == "2025-01-01"
        assert skill.path == str(install_dir / "react")

    def test_directory_name_and_default_version_fallback(self, install_dir):
        (install_dir / "plain").mkdir()
        (install_dir / "plain" / "SKILL.md").write_text("# no frontmatter")
        [skill] = Materializer(install_dir).list_installed()
        assert skill.name == "plain"
        assert skill.version == "1.0.0"

    def test_frontmatter_name_wins_over_directory(self, install_dir, installed_skill):
        installed_skill("ts-dir", name="typescript")
        assert [s.name for s in Materializer(install_dir).list_installed()] == ["typescript"]

    def test_ignores_directories_without_skill_file(self, install_dir, installed_skill):
        installed_skill("react")
        (install_dir / "empty").mkdir()
        (install_dir / "notes.txt").write_text("x")
        assert [s.name for s in Materializer(install_dir).list_installed()] == ["react"]

    def test_missing_install_path(self, tmp_path):
        assert Materializer(tmp_path / "nope").list_installed() == []

    def test_get_installed(self, install_dir, installed_skill):
        installed_skill("react", version="3.0.0")
        materializer = Materializer(install_dir)
        assert materializer.get_installed("react").version == "3.0.0"
        assert materializer.get_installed("vue") is None
