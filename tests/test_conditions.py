"""Tests for step conditions and the scaffold context"""
import os
import threading

import pytest

from arbor.exceptions import ConditionError, TemplateError
from arbor.scaffold.conditions import current_os, evaluate, preflight_failures
from arbor.scaffold.context import ScaffoldContext


@pytest.fixture
def ctx(temp_dir):
    """A context rooted at an empty temp directory."""
    return ScaffoldContext(str(temp_dir), branch="feature/x", repo_name="app", site_name="app")


class TestEvaluate:
    """Test condition predicates."""

    def test_empty_condition_is_true(self, ctx):
        """No predicates means run."""
        assert evaluate({}, ctx) is True

    def test_file_exists(self, ctx, temp_dir):
        """file_exists accepts a name or a list, all must exist."""
        (temp_dir / "composer.json").write_text("{}")
        assert evaluate({"file_exists": "composer.json"}, ctx)
        assert not evaluate({"file_exists": ["composer.json", "artisan"]}, ctx)

    def test_env_exists_sees_context_env(self, temp_dir):
        """Variables added through the context's env count."""
        ctx = ScaffoldContext(str(temp_dir), env={"ARBOR_TEST_TOKEN": "x"})
        assert evaluate({"env_exists": "ARBOR_TEST_TOKEN"}, ctx)
        assert not evaluate({"env_exists": ["ARBOR_TEST_TOKEN", "ARBOR_TEST_NOPE"]}, ctx)

    def test_command_exists(self, ctx):
        """command_exists looks on PATH."""
        assert evaluate({"command_exists": "git"}, ctx)
        assert not evaluate({"command_exists": "arbor-no-such-command"}, ctx)

    def test_env_file_contains_and_missing(self, ctx, temp_dir):
        """A key with an empty value counts as missing."""
        (temp_dir / ".env").write_text("APP_KEY=\nDB_CONNECTION=mysql\n")
        assert evaluate({"env_file_contains": "DB_CONNECTION"}, ctx)
        assert evaluate({"env_file_missing": "APP_KEY"}, ctx)
        assert not evaluate({"env_file_contains": "APP_KEY"}, ctx)
        assert evaluate({"env_file_missing": {"file": ".env.testing", "key": "DB_CONNECTION"}}, ctx)

    def test_env_file_contains_value(self, ctx, temp_dir):
        """An optional value requires an exact match."""
        (temp_dir / ".env").write_text("DB_CONNECTION=sqlite\n")
        assert evaluate({"env_file_contains": {"key": "DB_CONNECTION", "value": "sqlite"}}, ctx)
        assert not evaluate({"env_file_contains": {"key": "DB_CONNECTION", "value": "mysql"}}, ctx)

    def test_os(self, ctx):
        """os matches the running platform."""
        assert evaluate({"os": [current_os(), "plan9"]}, ctx)
        assert not evaluate({"os": "plan9"}, ctx)

    def test_not_negates(self, ctx, temp_dir):
        """not inverts a nested condition map."""
        assert evaluate({"not": {"file_exists": "composer.lock"}}, ctx)
        (temp_dir / "composer.lock").write_text("{}")
        assert not evaluate({"not": {"file_exists": "composer.lock"}}, ctx)

    def test_all_predicates_must_hold(self, ctx, temp_dir):
        """Predicates in one map are and-ed."""
        (temp_dir / "artisan").write_text("")
        assert not evaluate({"file_exists": "artisan", "os": "plan9"}, ctx)

    @pytest.mark.parametrize(
        "condition",
        [{"bogus": "x"}, {"file_exists": 3}, {"not": "file_exists"}, {"env_file_contains": {"file": ".env"}}],
    )
    def test_malformed_conditions(self, ctx, condition):
        """Unknown keys and bad arguments raise ConditionError."""
        with pytest.raises(ConditionError):
            evaluate(condition, ctx)


class TestPreflightFailures:
    """Test collecting every pre-flight failure."""

    def test_collects_all_missing(self, ctx):
        """Every missing env var and command is reported, not just the first."""
        env, commands, files, other = preflight_failures(
            {"env_exists": ["ARBOR_MISSING_A", "ARBOR_MISSING_B"], "command_exists": "arbor-nope"}, ctx
        )
        assert env == ["ARBOR_MISSING_A", "ARBOR_MISSING_B"]
        assert commands == ["arbor-nope"]
        assert files == []
        assert other == []

    def test_other_predicates_reported_by_name(self, ctx):
        """Failed non-collecting predicates are listed by key."""
        _, _, _, other = preflight_failures({"os": "plan9"}, ctx)
        assert other == ["os"]


class TestScaffoldContext:
    """Test the shared context."""

    def test_built_in_template_values(self, temp_dir):
        """Path and RepoPath come from the worktree location."""
        worktree = temp_dir / "project" / "feature-x"
        ctx = ScaffoldContext(str(worktree), branch="feature/x", repo_name="app", site_name="shop", db_suffix="calm_owl")
        snapshot = ctx.snapshot_for_template()
        assert snapshot["Path"] == "feature-x"
        assert snapshot["RepoPath"] == "project"
        assert snapshot["RepoName"] == "app"
        assert snapshot["SiteName"] == "shop"
        assert snapshot["Branch"] == "feature/x"
        assert snapshot["DbSuffix"] == "calm_owl"

    def test_site_name_is_database_safe(self, temp_dir):
        """SiteName expands to its sanitized form."""
        ctx = ScaffoldContext(str(temp_dir), site_name="My App", db_suffix="calm_owl")
        assert ctx.expand("{{.SiteName}}_{{.DbSuffix}}") == "my_app_calm_owl"
        assert ctx.site_name == "My App"

    def test_vars_and_builtins(self, ctx):
        """Step vars expand, built-ins win over a var of the same name."""
        ctx.set_var("Token", "abc")
        ctx.set_var("SiteName", "shadow")
        assert ctx.expand("{{ .Token }}-{{ .SiteName }}") == "abc-app"

    def test_unknown_variable(self, ctx):
        """Expanding an unset var is an error."""
        with pytest.raises(TemplateError):
            ctx.expand("{{ .Nope }}")

    def test_snapshot_is_isolated(self, ctx):
        """Writes after a snapshot don't change it."""
        ctx.set_db_suffix("first_one")
        snapshot = ctx.snapshot_for_template()
        ctx.set_db_suffix("second_one")
        ctx.set_var("Late", "x")
        assert snapshot["DbSuffix"] == "first_one"
        assert "Late" not in snapshot

    def test_vars_returns_copy(self, ctx):
        """Mutating vars() does not touch the context."""
        ctx.set_var("A", "1")
        ctx.vars()["A"] = "2"
        assert ctx.get_var("A") == "1"

    def test_concurrent_var_writes(self, ctx):
        """Parallel writers all land."""
        def writer(i):
            ctx.set_var(f"V{i}", str(i))
            ctx.snapshot_for_template()

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(ctx.vars()) == 50

    def test_process_env_merges(self, temp_dir, monkeypatch):
        """Context env overrides the OS environment."""
        monkeypatch.setenv("ARBOR_TEST_VALUE", "os")
        ctx = ScaffoldContext(str(temp_dir), env={"ARBOR_TEST_VALUE": "ctx"})
        env = ctx.process_env()
        assert env["ARBOR_TEST_VALUE"] == "ctx"
        assert env["PATH"] == os.environ["PATH"]
