"""Tests for stack matching and dependency resolution."""

import pytest

from provisioning.matcher import (
    DEPENDENCY_DECAY,
    PACKAGE_TRIGGER_FACTOR,
    add_manual,
    apply_excludes,
    compute_matches,
    match_stack,
    resolve_dependencies,
)
from shared_types import MatchProvenance


def by_name(matches):
    return {m.name: m for m in matches}


class TestMatchStack:
    def test_direct_id_match(self, make_entry, make_stack):
        stack = make_stack(("frameworks", "react", 0.95))
        matches = match_stack(stack, [make_entry("react"), make_entry("vue")])
        assert [m.name for m in matches] == ["react"]
        assert matches[0].confidence == 0.95
        assert matches[0].provenance == MatchProvenance.DISCOVERY
        assert matches[0].matched_by == "detected: package.json (react)"

    def test_package_trigger_scales_confidence(self, make_entry, make_stack):
        stack = make_stack(("frameworks", "nextjs", 0.9, "package.json (next)"))
        matches = match_stack(stack, [make_entry("next-app-router", packages=["next"])])
        assert len(matches) == 1
        assert matches[0].confidence == pytest.approx(0.9 * PACKAGE_TRIGGER_FACTOR)
        assert matches[0].matched_by == "package trigger: package.json (next)"

    def test_direct_match_preferred_over_trigger(self, make_entry, make_stack):
        stack = make_stack(("frameworks", "react", 0.8))
        matches = match_stack(stack, [make_entry("react", packages=["react"])])
        assert matches[0].confidence == 0.8

    def test_manual_only_never_discovered(self, make_entry, make_stack):
        stack = make_stack(("tools", "docker", 0.9))
        assert match_stack(stack, [make_entry("docker", manual_only=True)]) == []

    def test_empty_stack(self, make_entry, make_stack):
        assert match_stack(make_stack(), [make_entry("react")]) == []


class TestAddManual:
    def test_manual_has_full_confidence(self, make_entry):
        matches = add_manual([], ["react"], [make_entry("react")])
        assert matches[0].confidence == 1.0
        assert matches[0].provenance == MatchProvenance.MANUAL

    def test_manual_only_entries_can_be_included(self, make_entry):
        matches = add_manual([], ["docker"], [make_entry("docker", manual_only=True)])
        assert [m.name for m in matches] == ["docker"]

    def test_unknown_name_ignored(self, make_entry):
        assert add_manual([], ["ghost"], [make_entry("react")]) == []

    def test_already_matched_kept_once(self, make_entry, make_stack):
        catalog = [make_entry("react")]
        discovered = match_stack(make_stack(("frameworks", "react", 0.9)), catalog)
        matches = add_manual(discovered, ["react"], catalog)
        assert len(matches) == 1
        assert matches[0].provenance == MatchProvenance.DISCOVERY


class TestResolveDependencies:
    def test_transitive_closure_with_decay(self, make_entry):
        catalog = [
            make_entry("nextjs", dependencies=["react"]),
            make_entry("react", dependencies=["typescript"]),
            make_entry("typescript"),
        ]
        roots = add_manual([], ["nextjs"], catalog)
        resolved = by_name(resolve_dependencies(roots, catalog))
        assert set(resolved) == {"nextjs", "react", "typescript"}
        assert resolved["react"].confidence == pytest.approx(DEPENDENCY_DECAY)
        assert resolved["typescript"].confidence == pytest.approx(DEPENDENCY_DECAY ** 2)
        assert resolved["typescript"].provenance == MatchProvenance.DEPENDENCY
        assert resolved["typescript"].matched_by == "dependency of react"

    def test_cycle_terminates(self, make_entry):
        catalog = [make_entry("a", dependencies=["b"]), make_entry("b", dependencies=["a"])]
        resolved = resolve_dependencies(add_manual([], ["a"], catalog), catalog)
        assert sorted(m.name for m in resolved) == ["a", "b"]

    def test_self_dependency(self, make_entry):
        catalog = [make_entry("a", dependencies=["a"])]
        assert [m.name for m in resolve_dependencies(add_manual([], ["a"], catalog), catalog)] == ["a"]

    def test_unknown_dependency_dropped(self, make_entry):
        catalog = [make_entry("a", dependencies=["missing"])]
        assert [m.name for m in resolve_dependencies(add_manual([], ["a"], catalog), catalog)] == ["a"]

    def test_existing_match_not_downgraded(self, make_entry):
        catalog = [make_entry("a", dependencies=["b"]), make_entry("b")]
        roots = add_manual([], ["a", "b"], catalog)
        resolved = by_name(resolve_dependencies(roots, catalog))
        assert resolved["b"].provenance == MatchProvenance.MANUAL
        assert resolved["b"].confidence == 1.0


class TestComputeMatches:
    def test_nextjs_pulls_in_dependency_chain(self, make_entry, make_stack):
        catalog = [
            make_entry("nextjs", dependencies=["typescript", "react"]),
            make_entry("react", dependencies=["typescript"]),
            make_entry("typescript"),
            make_entry("django"),
        ]
        stack = make_stack(("frameworks", "nextjs", 0.95, "package.json (next)"))
        assert {m.name for m in compute_matches(stack, catalog)} == {"nextjs", "react", "typescript"}

    def test_exclude_applies_after_resolution(self, make_entry, make_stack):
        catalog = [make_entry("nextjs", dependencies=["react"]), make_entry("react")]
        stack = make_stack(("frameworks", "nextjs", 0.95))
        matches = compute_matches(stack, catalog, always_exclude=["react"])
        assert [m.name for m in matches] == ["nextjs"]

    def test_excluded_root_contributes_no_dependencies(self, make_entry, make_stack):
        catalog = [make_entry("nextjs", dependencies=["react"]), make_entry("react")]
        stack = make_stack(("frameworks", "nextjs", 0.95))
        assert compute_matches(stack, catalog, always_exclude=["nextjs"]) == []

    def test_exclude_beats_include(self, make_entry, make_stack):
        catalog = [make_entry("react")]
        assert compute_matches(make_stack(), catalog, ["react"], ["react"]) == []

    def test_apply_excludes(self, make_entry):
        catalog = [make_entry("a"), make_entry("b")]
        matches = add_manual([], ["a", "b"], catalog)
        assert [m.name for m in apply_excludes(matches, ["a"])] == ["b"]
