"""
Tests for domain models — package specs, config, run state machine.
"""

import pytest
from pydantic import ValidationError

from polyinstall.core.models import (
    CheckResult,
    CommandOutcome,
    InstallationConfig,
    InstallationKind,
    InstallationRun,
    InstallError,
    InstallProgress,
    Outcome,
    PackageManager,
    PackageResult,
    PackageSpec,
    PreflightReport,
    Stage,
    StageError,
)

# ── PackageSpec ─────────────────────────────────────────────────


class TestPackageSpec:
    def test_parse_plain_name(self):
        spec = PackageSpec.parse("left-pad")
        assert spec.name == "left-pad"
        assert spec.version is None
        assert spec.requirement == "left-pad"

    def test_parse_with_version(self):
        spec = PackageSpec.parse("typescript@5.4.5")
        assert spec.name == "typescript"
        assert spec.version == "5.4.5"
        assert str(spec) == "typescript@5.4.5"

    def test_parse_scoped(self):
        spec = PackageSpec.parse("@types/node@^20")
        assert spec.name == "@types/node"
        assert spec.version == "^20"

    def test_parse_scoped_without_version(self):
        spec = PackageSpec.parse("@angular/cli")
        assert spec.name == "@angular/cli"
        assert spec.version is None

    def test_parse_kind_and_optional(self):
        spec = PackageSpec.parse("eslint", kind=InstallationKind.DEV, optional=True)
        assert spec.kind == InstallationKind.DEV
        assert spec.optional

    @pytest.mark.parametrize("text", ["", "a@b@c", "two words"])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError):
            PackageSpec.parse(text)

    def test_frozen(self):
        spec = PackageSpec(name="a")
        with pytest.raises(ValidationError):
            spec.name = "b"


# ── InstallationConfig ──────────────────────────────────────────


class TestInstallationConfig:
    def test_defaults(self):
        config = InstallationConfig()
        assert config.packages == []
        assert config.timeout == 300.0
        assert config.retry_attempts == 1
        assert config.auto_detect_manager
        assert config.manager is None

    def test_string_packages_are_parsed(self):
        config = InstallationConfig(packages=["a@1.0.0", {"name": "b", "optional": True}])
        assert config.packages[0].version == "1.0.0"
        assert config.packages[1].optional
        assert config.package_count == 2

    def test_invalid_package_string(self):
        with pytest.raises(ValidationError):
            InstallationConfig(packages=["a@b@c"])

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            InstallationConfig(timeout=0)

    def test_retry_attempts_at_least_one(self):
        with pytest.raises(ValidationError):
            InstallationConfig(retry_attempts=0)

    def test_manager_enum(self):
        config = InstallationConfig(preferred_manager="pnpm")
        assert config.preferred_manager == PackageManager.PNPM

    def test_sudo_password_never_serialized(self):
        config = InstallationConfig(sudo_password="hunter2")
        assert "sudo_password" not in config.model_dump()
        assert "hunter2" not in repr(config)


# ── CommandOutcome ──────────────────────────────────────────────


class TestCommandOutcome:
    def test_ok(self):
        assert CommandOutcome().ok
        assert not CommandOutcome(exit_code=1).ok
        assert not CommandOutcome(timed_out=True).ok

    def test_error_text_prefers_stderr_tail(self):
        outcome = CommandOutcome(exit_code=1, stderr="x" * 10 + "END", stdout="out")
        assert outcome.error_text(limit=3) == "END"

    def test_error_text_falls_back_to_exit_code(self):
        assert "code 2" in CommandOutcome(exit_code=2).error_text()

    def test_error_text_timeout(self):
        outcome = CommandOutcome(argv=["npm", "install"], timed_out=True, exit_code=124)
        assert outcome.error_text() == "Command timed out: npm install"

    def test_failure_factory(self):
        outcome = CommandOutcome.failure(["x"], 127, "not found")
        assert outcome.exit_code == 127
        assert outcome.argv == ["x"]


# ── Preflight report ────────────────────────────────────────────


class TestPreflightReport:
    def test_classification(self):
        report = PreflightReport()
        report.add(CheckResult(name="ok", passed=True))
        report.add(CheckResult(name="crit", passed=False, critical=True))
        report.add(CheckResult(name="warn", passed=False, critical=False))
        assert len(report.checks) == 3
        assert [c.name for c in report.critical_failures] == ["crit"]
        assert [c.name for c in report.warnings] == ["warn"]
        assert not report.passed

    def test_warnings_do_not_block(self):
        report = PreflightReport()
        report.add(CheckResult(name="warn", passed=False))
        assert report.passed


# ── InstallationRun ─────────────────────────────────────────────


class TestInstallationRun:
    def test_happy_path_transitions(self):
        run = InstallationRun()
        for stage in (Stage.PREFLIGHT, Stage.INSTALLING, Stage.VERIFYING, Stage.COMPLETED):
            run.advance(stage)
        assert run.ok
        assert run.finished

    def test_preflight_can_be_skipped(self):
        run = InstallationRun()
        run.advance(Stage.INSTALLING)
        assert run.stage == Stage.INSTALLING

    def test_no_reentry(self):
        run = InstallationRun()
        run.advance(Stage.PREFLIGHT)
        with pytest.raises(StageError):
            run.advance(Stage.PREFLIGHT)

    def test_no_backwards(self):
        run = InstallationRun()
        run.advance(Stage.INSTALLING)
        with pytest.raises(StageError):
            run.advance(Stage.PREFLIGHT)

    def test_terminal_is_final(self):
        run = InstallationRun()
        run.fail(InstallError(code="X", message="boom"))
        with pytest.raises(StageError):
            run.advance(Stage.INSTALLING)

    def test_cannot_skip_verifying(self):
        run = InstallationRun()
        run.advance(Stage.INSTALLING)
        with pytest.raises(StageError):
            run.advance(Stage.COMPLETED)

    def test_fail_records_error_once(self):
        run = InstallationRun()
        run.fail(InstallError(code="A", message="a"))
        run.fail(InstallError(code="B", message="b"))
        assert run.stage == Stage.FAILED
        assert [e.code for e in run.errors] == ["A", "B"]

    def test_finish_duration_never_decreases(self):
        run = InstallationRun()
        run.duration_ms = 10_000_000
        run.finish()
        assert run.duration_ms == 10_000_000
        assert run.ended_at is not None

    def test_derived_counts(self):
        run = InstallationRun()
        run.package_results.append(
            PackageResult(spec=PackageSpec(name="a"), outcome=Outcome.COMPLETED)
        )
        run.package_results.append(
            PackageResult(spec=PackageSpec(name="b"), outcome=Outcome.FAILED)
        )
        assert run.succeeded == 1
        assert run.failed_packages == ["b"]
        data = run.to_dict()
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["stage"] == "initializing"


class TestInstallProgress:
    def test_percentage(self):
        assert InstallProgress(stage=Stage.INSTALLING, message="", completed=1, total=4).percentage == 25.0

    def test_percentage_without_total(self):
        assert InstallProgress(stage=Stage.INITIALIZING, message="").percentage == 0.0

    def test_percentage_serialized(self):
        progress = InstallProgress(
            stage=Stage.INSTALLING, message="Installing a...", completed=1, total=2,
            current_package="a",
        )
        data = progress.model_dump(mode="json")
        assert data["percentage"] == 50.0
        assert data["stage"] == "installing"
