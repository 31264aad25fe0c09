"""Tests for the built-in scaffold steps"""
import os
import stat
import threading

import pytest

from arbor.config.project import StepConfig
from arbor.exceptions import CommandFailedError, ConfigError, EnvKeyNotFoundError
from arbor.scaffold.commander import CommandResult, Commander
from arbor.scaffold.context import ScaffoldContext, StepOptions
from arbor.scaffold.registry import default_registry
from arbor.scaffold.steps import BinaryStep, EnvCopyStep, EnvReadStep, EnvWriteStep, FileCopyStep, ShellStep
from arbor.utils.env_file import read_env_file


@pytest.fixture
def worktree(temp_dir):
    path = temp_dir / "project" / "feature-x"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def ctx(worktree):
    return ScaffoldContext(str(worktree), branch="feature/x", repo_name="app", site_name="shop", db_suffix="calm_owl")


class TestFileCopyStep:
    """Test file.copy."""

    def test_copies_with_mode(self, ctx, worktree):
        """The copy has the source content and mode 0644."""
        (worktree / ".env.example").write_text("APP_NAME=example\n")
        os.chmod(worktree / ".env.example", 0o600)
        step = FileCopyStep(StepConfig(name="file.copy", from_=".env.example", to=".env"))

        assert step.condition(ctx)
        step.run(ctx, StepOptions())

        assert (worktree / ".env").read_text() == "APP_NAME=example\n"
        assert stat.S_IMODE(os.stat(worktree / ".env").st_mode) == 0o644

    def test_skipped_without_source(self, ctx):
        """A missing source fails the default condition."""
        step = FileCopyStep(StepConfig(name="file.copy", from_=".env.example", to=".env"))
        assert not step.condition(ctx)


class TestEnvSteps:
    """Test env.read, env.write and env.copy."""

    def test_env_read_stores_var(self, ctx, worktree):
        """The value lands under store_as."""
        (worktree / ".env").write_text("APP_URL=http://shop.test\n")
        step = EnvReadStep(StepConfig(name="env.read", key="APP_URL", store_as="Url"))
        step.run(ctx, StepOptions())
        assert ctx.get_var("Url") == "http://shop.test"

    def test_env_read_missing_key(self, ctx, worktree):
        """A missing key is an error."""
        (worktree / ".env").write_text("A=1\n")
        with pytest.raises(EnvKeyNotFoundError):
            EnvReadStep(StepConfig(name="env.read", key="B")).run(ctx, StepOptions())

    def test_env_write_expands_template(self, ctx, worktree):
        """The value is template-expanded and other lines are kept."""
        (worktree / ".env").write_text("# db\nDB_DATABASE=old\nAPP_NAME=x\n")
        step = EnvWriteStep(StepConfig(name="env.write", key="DB_DATABASE", value="{{ .SiteName }}_{{ .DbSuffix }}"))
        step.run(ctx, StepOptions())
        assert (worktree / ".env").read_text() == "# db\nDB_DATABASE=shop_calm_owl\nAPP_NAME=x\n"

    def test_env_write_creates_file(self, ctx, worktree):
        """A missing target file is created."""
        EnvWriteStep(StepConfig(name="env.write", key="A", value="1", file=".env.local")).run(ctx, StepOptions())
        assert read_env_file(worktree, ".env.local") == {"A": "1"}

    def test_env_write_concurrent(self, ctx, worktree):
        """Concurrent writers to one file keep every key."""
        steps = [EnvWriteStep(StepConfig(name="env.write", key=f"K{i}", value=str(i))) for i in range(10)]
        threads = [threading.Thread(target=s.run, args=(ctx, StepOptions())) for s in steps]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert read_env_file(worktree) == {f"K{i}": str(i) for i in range(10)}

    def test_env_copy_copies_keys(self, ctx, worktree, temp_dir):
        """Keys come from the source directory's env file."""
        main = temp_dir / "project" / "main"
        main.mkdir()
        (main / ".env").write_text("STRIPE_KEY=sk\nMAIL_HOST=smtp\nOTHER=1\n")
        (worktree / ".env").write_text("APP_NAME=x\n")

        step = EnvCopyStep(
            StepConfig(name="env.copy", key="STRIPE_KEY", keys=["MAIL_HOST"], source="../main")
        )
        step.run(ctx, StepOptions())

        assert read_env_file(worktree) == {"APP_NAME": "x", "STRIPE_KEY": "sk", "MAIL_HOST": "smtp"}

    def test_env_copy_all_or_nothing(self, ctx, worktree, temp_dir):
        """One missing key means nothing is written."""
        source = temp_dir / "source"
        source.mkdir()
        (source / ".env").write_text("A=1\n")
        (worktree / ".env").write_text("KEEP=1\n")

        step = EnvCopyStep(StepConfig(name="env.copy", keys=["A", "B"], source=str(source)))
        with pytest.raises(EnvKeyNotFoundError, match="B"):
            step.run(ctx, StepOptions())
        assert (worktree / ".env").read_text() == "KEEP=1\n"

    def test_env_copy_needs_keys(self, ctx):
        """key or keys is required."""
        with pytest.raises(ConfigError):
            EnvCopyStep(StepConfig(name="env.copy", source=".")).run(ctx, StepOptions())

    def test_env_copy_missing_source(self, ctx):
        """A missing source file is an error."""
        with pytest.raises(FileNotFoundError):
            EnvCopyStep(StepConfig(name="env.copy", key="A", source="nowhere")).run(ctx, StepOptions())


class TestCommandSteps:
    """Test binary and shell steps through a recording commander."""

    def test_binary_step_args(self, ctx, worktree, fake_commander):
        """Binary words, expanded args and extra args form the command."""
        step = BinaryStep(
            StepConfig(name="herd", args=["link", "--secure", "{{ .SiteName }}"]), "herd", fake_commander
        )
        step.run(ctx, StepOptions(args=["--verbose"]))

        call = fake_commander.calls[0]
        assert call["args"] == ["herd", "link", "--secure", "shop", "--verbose"]
        assert call["cwd"] == str(worktree)

    def test_multi_word_binary(self, ctx, fake_commander):
        """'php artisan' splits into program and first argument."""
        step = BinaryStep(StepConfig(name="php.laravel.artisan", args=["migrate"]), "php artisan", fake_commander)
        step.run(ctx, StepOptions())
        assert fake_commander.commands == [["php", "artisan", "migrate"]]

    def test_binary_default_condition(self, ctx):
        """Without a condition the binary must be on PATH."""
        assert BinaryStep(StepConfig(name="git"), "git").condition(ctx)
        assert not BinaryStep(StepConfig(name="x"), "arbor-no-such-binary").condition(ctx)

    def test_structured_condition_wins(self, ctx):
        """A configured condition replaces the PATH check."""
        step = BinaryStep(StepConfig(name="x", condition={"file_exists": "artisan"}), "arbor-no-such-binary")
        assert not step.condition(ctx)

    def test_broken_condition_is_false(self, ctx):
        """A condition that can't be evaluated skips the step."""
        step = BinaryStep(StepConfig(name="git", condition={"bogus": True}), "git")
        assert not step.condition(ctx)

    def test_store_as(self, ctx, commander_factory):
        """Trimmed output is stored for later templates."""
        commander = commander_factory(lambda args: CommandResult(output="  v1.2.3\n", returncode=0))
        step = ShellStep(StepConfig(name="bash.run", command="git describe", store_as="Version"), "bash", commander)
        step.run(ctx, StepOptions())
        assert ctx.get_var("Version") == "v1.2.3"
        assert ctx.expand("{{ .Version }}") == "v1.2.3"

    def test_shell_step_expands_command(self, ctx, fake_commander):
        """The command line is expanded and passed to -c."""
        step = ShellStep(StepConfig(name="command.run", command="echo {{ .Branch }}"), "sh", fake_commander)
        step.run(ctx, StepOptions())
        assert fake_commander.commands == [["sh", "-c", "echo feature/x"]]

    def test_shell_step_requires_command(self, ctx, fake_commander):
        """A shell step without a command is a config error."""
        with pytest.raises(ConfigError):
            ShellStep(StepConfig(name="bash.run"), "bash", fake_commander).run(ctx, StepOptions())

    def test_non_zero_exit(self, ctx, commander_factory):
        """A failing command raises with its output."""
        commander = commander_factory(lambda args: CommandResult(output="boom", returncode=2))
        step = ShellStep(StepConfig(name="bash.run", command="false"), "bash", commander)
        with pytest.raises(CommandFailedError, match="boom"):
            step.run(ctx, StepOptions())

    def test_real_shell_command(self, ctx, worktree):
        """A real sh -c runs in the worktree and captures output."""
        step = ShellStep(StepConfig(name="command.run", command="pwd", store_as="Dir"), "sh", Commander())
        step.run(ctx, StepOptions())
        assert os.path.realpath(ctx.get_var("Dir")) == os.path.realpath(str(worktree))


class TestStepRegistry:
    """Test the step kind registry."""

    def test_built_in_kinds(self):
        """Every documented kind is registered."""
        names = default_registry().list_registered()
        for name in [
            "php", "php.composer", "php.laravel.artisan", "node.npm", "node.yarn", "node.pnpm",
            "node.bun", "herd", "bash.run", "command.run", "file.copy", "env.read", "env.write",
            "env.copy", "db.create", "db.destroy",
        ]:
            assert name in names

    def test_binary_mapping(self, fake_commander):
        """php.composer runs composer."""
        step = default_registry().create(StepConfig(name="php.composer", args=["install"]), fake_commander)
        assert isinstance(step, BinaryStep)
        assert step.binary == "composer"
        assert step.commander is fake_commander

    def test_unknown_kind(self):
        """Unknown names are config errors."""
        with pytest.raises(ConfigError, match="unknown step type 'nope'"):
            default_registry().create(StepConfig(name="nope"))

    def test_custom_factory(self):
        """Registered factories are used by create."""
        registry = default_registry()
        registry.register("custom", lambda config, commander=None: FileCopyStep(config, commander))
        assert isinstance(registry.create(StepConfig(name="custom")), FileCopyStep)
