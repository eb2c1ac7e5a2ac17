"""Tests for the project context file."""

from datetime import datetime, timezone

import yaml

from provisioning.context import ProjectContextStore
from provisioning.models import InstalledSkill


def installed(name="react"):
    return InstalledSkill(name, "1.0.0", datetime(2025, 1, 1, tzinfo=timezone.utc), f"/skills/{name}")


class TestProjectContextStore:
    def test_load_missing(self, tmp_path):
        assert ProjectContextStore(tmp_path / "ctx.yaml").load() is None

    def test_load_invalid_yaml(self, tmp_path):
        path = tmp_path / "ctx.yaml"
        path.write_text("key: [unclosed")
        assert ProjectContextStore(path).load() is None

    def test_update_writes_yaml(self, tmp_path, make_stack):
        store = ProjectContextStore(tmp_path / ".mother" / "ctx.yaml")
        stack = make_stack(("frameworks", "nextjs", 0.95))
        context = store.update({"name": "web"}, stack, ["manifest"], [installed()])

        raw = yaml.safe_load((tmp_path / ".mother" / "ctx.yaml").read_text())
        assert raw["project"] == {"name": "web"}
        assert raw["detection_sources"] == ["manifest"]
        assert raw["installed_skills"][0]["name"] == "react"
        assert raw["manual"] == {"include_skills": [], "exclude_skills": []}
        assert store.load().stack == stack
        assert context.stack.ids() == {"nextjs"}

    def test_manual_overrides_survive_update(self, tmp_path, make_stack):
        store = ProjectContextStore(tmp_path / "ctx.yaml")
        store.update({"name": "web"}, make_stack(), [], [])
        store.add_manual_skill("docker")
        store.exclude_skill("react")
        store.update({"name": "web"}, make_stack(("languages", "python", 0.9)), ["manifest"], [])

        context = store.load()
        assert context.manual.include_skills == ["docker"]
        assert context.manual.exclude_skills == ["react"]
        assert context.stack.ids() == {"python"}

    def test_include_and_exclude_are_exclusive(self, tmp_path, make_stack):
        store = ProjectContextStore(tmp_path / "ctx.yaml")
        store.update({"name": "web"}, make_stack(), [], [])
        store.exclude_skill("docker")
        store.add_manual_skill("docker")
        assert store.load().manual.exclude_skills == []
        store.exclude_skill("docker")
        manual = store.load().manual
        assert manual.include_skills == []
        assert manual.exclude_skills == ["docker"]

    def test_overrides_need_existing_context(self, tmp_path):
        store = ProjectContextStore(tmp_path / "ctx.yaml")
        assert store.add_manual_skill("docker") is False
        assert store.exclude_skill("docker") is False
        assert not (tmp_path / "ctx.yaml").exists()
