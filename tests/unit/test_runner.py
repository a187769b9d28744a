"""Tests for the suite runner."""

from __future__ import annotations

import pytest
from conftest import failing_command

from lockstep.core.errors import ConsistencyViolation
from lockstep.core.registry import UnknownCheckError
from lockstep.core.runner import CheckFailedError, SuiteRunner
from lockstep.models.checks import CheckOutcome, CheckSpec


class TestSuiteRunner:
    def test_single_name_invokes_only_that_check(self, recording_registry, invoked):
        registry = recording_registry()
        for name in registry.declared_names():
            invoked.clear()
            SuiteRunner(registry).run([name])
            assert invoked == [name]

    def test_names_run_in_given_order(self, recording_registry, invoked):
        SuiteRunner(recording_registry()).run(["cargo_test", "fmt"])
        assert invoked == ["cargo_test", "fmt"]

    def test_empty_runs_aggregate(self, recording_registry, invoked):
        results = SuiteRunner(recording_registry()).run([])
        assert invoked == ["fmt", "clippy", "cargo_test"]
        assert [r.name for r in results] == invoked
        assert all(r.outcome == CheckOutcome.PASSED for r in results)

    def test_run_aggregate(self, recording_registry, invoked):
        SuiteRunner(recording_registry(aggregate_order=["clippy", "fmt"])).run_aggregate()
        assert invoked == ["clippy", "fmt"]

    def test_unknown_name_is_fatal(self, recording_registry, invoked):
        with pytest.raises(UnknownCheckError) as excinfo:
            SuiteRunner(recording_registry()).run(["fmt", "bogus", "clippy"])
        assert "Unknown test bogus" in str(excinfo.value)
        assert invoked == ["fmt"]

    def test_failure_short_circuits_and_propagates_status(self, recording_registry, invoked):
        registry = recording_registry(names=("fmt",))
        registry.register(CheckSpec(name="audit"), failing_command(3))
        registry.register(CheckSpec(name="clippy"), lambda: invoked.append("clippy"))
        runner = SuiteRunner(registry)

        with pytest.raises(CheckFailedError) as excinfo:
            runner.run()
        assert excinfo.value.exit_code == 3
        assert excinfo.value.name == "audit"
        assert invoked == ["fmt"]
        assert [r.outcome for r in runner.last_results] == [
            CheckOutcome.PASSED,
            CheckOutcome.FAILED,
        ]

    def test_signal_killed_check_exits_fatal(self, recording_registry):
        registry = recording_registry(names=())
        registry.register(CheckSpec(name="cargo_test"), failing_command(-9))
        with pytest.raises(CheckFailedError) as excinfo:
            SuiteRunner(registry).run(["cargo_test"])
        assert excinfo.value.exit_code == 9

    def test_abort_propagates_unchanged(self, recording_registry):
        registry = recording_registry(names=())

        def _inconsistent() -> None:
            raise ConsistencyViolation("mismatch")

        registry.register(CheckSpec(name="self"), _inconsistent)
        runner = SuiteRunner(registry)
        with pytest.raises(ConsistencyViolation):
            runner.run(["self"])
        assert runner.last_results[-1].outcome == CheckOutcome.ABORTED

    def test_announce_called_per_check(self, recording_registry):
        announced: list[str] = []
        SuiteRunner(recording_registry(), announce=announced.append).run()
        assert announced == ["fmt", "clippy", "cargo_test"]

    def test_undeclared_aggregate_member_is_unknown(self, recording_registry):
        registry = recording_registry(aggregate_order=["fmt", "ghost"])
        with pytest.raises(UnknownCheckError):
            SuiteRunner(registry).run()
