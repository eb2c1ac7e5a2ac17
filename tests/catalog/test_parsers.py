"""Tests for catalog document parsers."""

import pytest

from catalog.parsers import (
    CatalogFormatError,
    infer_triggers,
    parse_bundles,
    parse_github_path,
    parse_json_catalog,
    parse_registry_yaml,
    parse_skill_metadata,
    resolve_path,
)


class TestJsonCatalog:
    def test_source_repo_and_path(self):
        entries = parse_json_catalog({
            "generated_at": "2025-01-01",
            "skills": [
                {
                    "id": "react",
                    "version": 2,
                    "source": {"repo": "acme/skills", "path": "skills/react", "commit_sha": "abc"},
                    "triggers": {"packages": ["react"], "manualOnly": False},
                    "dependencies": ["typescript"],
                },
                {"name": "docs", "path": "skills/docs", "triggers": None},
            ],
        })
        react, docs = entries
        assert react.name == "react"
        assert react.path == "https://github.com/acme/skills/tree/main/skills/react"
        assert react.version == "2"
        assert react.last_updated == "abc"
        assert react.dependencies == ["typescript"]
        assert docs.version == "1.0.0"
        assert docs.triggers.packages == []
        assert docs.last_updated == "2025-01-01"

    def test_invalid_entries_skipped(self):
        entries = parse_json_catalog({"skills": [{"description": "no name"}, "junk", {"id": "ok"}]})
        assert [e.name for e in entries] == ["ok"]

    def test_wrong_shape(self):
        with pytest.raises(CatalogFormatError):
            parse_json_catalog([])
        with pytest.raises(CatalogFormatError):
            parse_json_catalog({"skills": {"a": 1}})


class TestRegistryYaml:
    def test_relative_paths_resolved(self):
        content = """
skills:
  - name: nextjs
    path: skills/nextjs
    version: 1.2.0
    triggers:
      packages: [next]
      manual_only: true
  - name: absolute
    path: https://example.com/skills/absolute
"""
        entries = parse_registry_yaml(content, "https://github.com/acme/skills/tree/main")
        assert entries[0].path == "https://github.com/acme/skills/tree/main/skills/nextjs"
        assert entries[0].triggers.manual_only is True
        assert entries[1].path == "https://example.com/skills/absolute"

    def test_not_a_mapping(self):
        with pytest.raises(CatalogFormatError):
            parse_registry_yaml("- a\n- b\n", "https://x")


def test_parse_bundles():
    bundles = parse_bundles({"bundles": [{"id": "web", "skills": ["react", "nextjs"]}, {"name": "no id"}]})
    assert [b.id for b in bundles] == ["web"]
    assert bundles[0].skills == ["react", "nextjs"]


def test_parse_skill_metadata():
    assert parse_skill_metadata("---\nname: x\nversion: 1.1.0\n---\nbody") == {"name": "x", "version": "1.1.0"}
    assert parse_skill_metadata("# no frontmatter") == {}


def test_parse_github_path():
    assert parse_github_path("https://github.com/acme/skills/tree/dev/skills/react") == (
        "acme", "skills", "dev", "skills/react"
    )
    assert parse_github_path("https://example.com/skills/react") is None


def test_infer_triggers():
    assert infer_triggers("nextjs") == {"packages": ["next"], "files": ["next.config.js", "next.config.mjs"]}
    assert infer_triggers("unknown") == {}


def test_resolve_path():
    assert resolve_path("skills/a", "https://x/base/") == "https://x/base/skills/a"
    assert resolve_path("https://y/a", "https://x") == "https://y/a"
