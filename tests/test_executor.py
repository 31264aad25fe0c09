"""Tests for sequential step execution"""
import pytest

from arbor.config.project import StepConfig
from arbor.exceptions import StepFailedError, TemplateError
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.executor import (
    STATUS_EXECUTED,
    STATUS_FAILED,
    STATUS_SKIPPED_CONDITION,
    STATUS_SKIPPED_DISABLED,
    STATUS_WOULD_EXECUTE,
    StepExecutor,
)
from arbor.scaffold.steps import EnvWriteStep, ShellStep, Step


class RecordingStep(Step):
    """Appends its name to a shared log when run."""

    def __init__(self, config, log, should_run=True, error=None):
        super().__init__(config)
        self.log = log
        self.should_run = should_run
        self.error = error

    def default_condition(self, ctx):
        return self.should_run

    def run(self, ctx, opts):
        if self.error is not None:
            raise self.error
        self.log.append(self.name)


@pytest.fixture
def ctx(temp_dir):
    return ScaffoldContext(str(temp_dir))


class TestStepExecutor:
    """Test the step runner."""

    def test_runs_in_order(self, ctx):
        """Steps run in declaration order."""
        log = []
        steps = [RecordingStep(StepConfig(name=n), log) for n in ("one", "two", "three")]
        results = StepExecutor(steps, ctx, StepOptions()).execute()
        assert log == ["one", "two", "three"]
        assert [r.status for r in results] == [STATUS_EXECUTED] * 3

    def test_disabled_and_condition_skips(self, ctx, capsys):
        """Disabled steps and unmet conditions are skipped, with verbose notes."""
        log = []
        steps = [
            RecordingStep(StepConfig(name="off", enabled=False), log),
            RecordingStep(StepConfig(name="unmet"), log, should_run=False),
            RecordingStep(StepConfig(name="on"), log),
        ]
        results = StepExecutor(steps, ctx, StepOptions(verbose=True)).execute()

        assert log == ["on"]
        assert [r.status for r in results] == [STATUS_SKIPPED_DISABLED, STATUS_SKIPPED_CONDITION, STATUS_EXECUTED]
        assert results[0].skipped and results[1].skipped and not results[2].skipped
        out = capsys.readouterr().out
        assert "Skipping step (disabled): off" in out
        assert "Skipping step (condition not met): unmet" in out

    def test_dry_run_runs_nothing(self, ctx, capsys):
        """Dry runs report what would execute."""
        log = []
        steps = [RecordingStep(StepConfig(name="one"), log), RecordingStep(StepConfig(name="two"), log)]
        results = StepExecutor(steps, ctx, StepOptions(dry_run=True)).execute()

        assert log == []
        assert [r.status for r in results] == [STATUS_WOULD_EXECUTE] * 2
        out = capsys.readouterr().out
        assert "[DRY-RUN] Would execute: one" in out
        assert "[DRY-RUN] Would execute: two" in out

    def test_first_failure_stops(self, ctx):
        """A failing step aborts the run and earlier work stays done."""
        log = []
        steps = [
            RecordingStep(StepConfig(name="one"), log),
            RecordingStep(StepConfig(name="bad"), log, error=RuntimeError("exploded")),
            RecordingStep(StepConfig(name="never"), log),
        ]
        executor = StepExecutor(steps, ctx, StepOptions())

        with pytest.raises(StepFailedError) as exc_info:
            executor.execute()

        assert str(exc_info.value) == "step bad failed: exploded"
        assert exc_info.value.step_name == "bad"
        assert exc_info.value.exit_code == 6
        assert log == ["one"]
        assert [r.status for r in executor.results] == [STATUS_EXECUTED, STATUS_FAILED]

    def test_quiet_hides_progress(self, ctx, capsys):
        """Quiet mode prints no running lines."""
        StepExecutor([RecordingStep(StepConfig(name="one"), [])], ctx, StepOptions(quiet=True)).execute()
        assert "Running" not in capsys.readouterr().out

    def test_unknown_template_variable_fails_step(self, ctx, temp_dir, fake_commander):
        """A value naming an unset variable fails its step before anything is written or run."""
        steps = [
            EnvWriteStep(StepConfig(name="env.write", key="APP_URL", value="https://{{ .Missing }}.test")),
            ShellStep(StepConfig(name="bash.run", command="echo {{ .Missing }}"), "bash", fake_commander),
        ]

        with pytest.raises(StepFailedError, match="step env.write failed") as exc_info:
            StepExecutor(steps, ctx, StepOptions(quiet=True)).execute()

        assert isinstance(exc_info.value.__cause__, TemplateError)
        assert not (temp_dir / ".env").exists()

        with pytest.raises(StepFailedError, match="step bash.run failed"):
            StepExecutor(steps[1:], ctx, StepOptions(quiet=True)).execute()
        assert fake_commander.calls == []
