"""Tests for DependencyResolver."""

from phasegate.application.dependency_resolver import DependencyResolver


class TestDependencyResolver:
    def test_unknown_dependency_is_missing(self, memory_store):
        """A phase that never ran cannot satisfy a dependency."""
        report = DependencyResolver(memory_store).resolve("06-x", ["05-y"])
        assert not report.satisfied
        assert report.missing == ("05-y",)
        assert report.resolved == ()

    def test_no_dependencies(self, memory_store):
        report = DependencyResolver(memory_store).resolve("06-x", [])
        assert report.satisfied

    def test_completed_dependency_resolves(self, memory_store, complete_phase):
        complete_phase("05-y")

        report = DependencyResolver(memory_store).resolve("06-x", ["05-y"])

        assert report.satisfied
        assert report.resolved == ("05-y",)

    def test_partially_complete_dependency(self, memory_store, make_state):
        state = make_state(approved=("spec", "research", "plan"), phase_id="05-y")
        memory_store.save("05-y", state)

        report = DependencyResolver(memory_store).resolve("06-x", ["05-y"])

        assert report.missing == ("05-y",)

    def test_self_dependency_is_missing(self, memory_store, complete_phase):
        complete_phase("06-x")
        report = DependencyResolver(memory_store).resolve("06-x", ["06-x"])
        assert report.missing == ("06-x",)

    def test_malformed_id_is_missing(self, memory_store):
        report = DependencyResolver(memory_store).resolve("06-x", ["not a phase"])
        assert report.missing == ("not a phase",)

    def test_corrupt_dependency_is_missing(self, memory_store):
        memory_store._documents["05-y"] = "{broken"

        report = DependencyResolver(memory_store).resolve("06-x", ["05-y"])

        assert report.missing == ("05-y",)

    def test_mixed(self, memory_store, complete_phase):
        complete_phase("04-z")

        report = DependencyResolver(memory_store).resolve("06-x", ["04-z", "05-y"])

        assert report.resolved == ("04-z",)
        assert report.missing == ("05-y",)
