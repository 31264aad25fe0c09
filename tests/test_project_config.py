"""Tests for project configuration loading and saving"""
import pytest

from arbor.config.migration import migrate_db_suffix_to_local
from arbor.config.local_state import LocalState, read_local_state, write_local_state
from arbor.config.project import (
    ProjectConfig,
    StepConfig,
    load_project,
    project_config_exists,
    save_project,
)
from arbor.exceptions import ConfigError


SAMPLE = """\
# Project settings
preset: laravel  # framework preset
site_name: shop

scaffold:
  pre_flight:
    condition:
      command_exists: php
  steps:
    - name: bash.run
      command: echo hi
      condition:
        file_exists: artisan
    - name: env.write
      key: APP_NAME
      value: "{{ .SiteName }}"
      enabled: false

cleanup:
  steps:
    - name: herd
    - name: bash.run
      condition:
        command: echo bye

custom_key: keep me
"""


class TestProjectConfigParsing:
    """Test reading arbor.yaml."""

    def test_load_full_config(self, temp_dir):
        """Every section is parsed into typed records."""
        (temp_dir / "arbor.yaml").write_text(SAMPLE)
        config = load_project(temp_dir)

        assert config.preset == "laravel"
        assert config.site_name == "shop"
        assert config.scaffold.pre_flight.condition == {"command_exists": "php"}
        assert [s.name for s in config.scaffold.steps] == ["bash.run", "env.write"]
        assert config.scaffold.steps[0].command == "echo hi"
        assert config.scaffold.steps[0].condition == {"file_exists": "artisan"}
        assert config.scaffold.steps[1].value == "{{ .SiteName }}"
        assert config.scaffold.override is False
        assert [c.name for c in config.cleanup_steps] == ["herd", "bash.run"]
        assert config.cleanup_steps[1].condition_string("command") == "echo bye"

    def test_enabled_defaults_to_true(self, temp_dir):
        """An absent 'enabled' means enabled; false disables."""
        (temp_dir / "arbor.yaml").write_text(SAMPLE)
        steps = load_project(temp_dir).scaffold.steps
        assert steps[0].enabled is None
        assert steps[0].is_enabled()
        assert not steps[1].is_enabled()

    def test_from_key_maps_to_from_field(self):
        """The YAML 'from' key fills from_."""
        step = StepConfig.from_dict({"name": "file.copy", "from": ".env.example", "to": ".env"})
        assert step.from_ == ".env.example"
        assert step.to == ".env"

    def test_scalar_args_become_list(self):
        """A single string arg is accepted as a one-item list."""
        assert StepConfig.from_dict({"name": "php", "args": "artisan"}).args == ["artisan"]

    def test_empty_step_name_rejected(self):
        """Steps need a name."""
        with pytest.raises(ConfigError):
            StepConfig(name="  ")

    def test_missing_file(self, temp_dir):
        """A missing arbor.yaml is a config error."""
        assert not project_config_exists(temp_dir)
        with pytest.raises(ConfigError, match="not found"):
            load_project(temp_dir)

    def test_invalid_yaml(self, temp_dir):
        """Broken YAML is a config error."""
        (temp_dir / "arbor.yaml").write_text("preset: [unclosed\n")
        with pytest.raises(ConfigError):
            load_project(temp_dir)

    @pytest.mark.parametrize(
        "content",
        [
            "scaffold:\n  steps: not-a-list\n",
            "scaffold:\n  override: maybe\n",
            "scaffold:\n  steps:\n    - name: php\n      enabled: sometimes\n",
            "cleanup: [1, 2]\n",
            "- just\n- a list\n",
        ],
    )
    def test_wrong_types_rejected(self, temp_dir, content):
        """Wrongly typed sections are config errors."""
        (temp_dir / "arbor.yaml").write_text(content)
        with pytest.raises(ConfigError):
            load_project(temp_dir)


class TestSaveProject:
    """Test writing arbor.yaml back."""

    def test_creates_new_file(self, temp_dir):
        """Saving into an empty directory creates arbor.yaml."""
        save_project(temp_dir, ProjectConfig(default_branch="main", preset="php"))
        config = load_project(temp_dir)
        assert config.default_branch == "main"
        assert config.preset == "php"

    def test_preserves_comments_and_unknown_keys(self, temp_dir):
        """Comments, steps and unknown keys survive a save."""
        (temp_dir / "arbor.yaml").write_text(SAMPLE)
        config = load_project(temp_dir)
        config.default_branch = "develop"
        save_project(temp_dir, config)

        text = (temp_dir / "arbor.yaml").read_text()
        assert "# Project settings" in text
        assert "# framework preset" in text
        assert "custom_key: keep me" in text
        assert text.rstrip().endswith("default_branch: develop")

        reloaded = load_project(temp_dir)
        assert [s.name for s in reloaded.scaffold.steps] == ["bash.run", "env.write"]
        assert reloaded.default_branch == "develop"


class TestLocalState:
    """Test .arbor.local handling."""

    def test_missing_file_is_empty(self, temp_dir):
        """No file means no suffix."""
        assert read_local_state(temp_dir) == LocalState()

    def test_write_and_read(self, temp_dir):
        """A written suffix reads back."""
        write_local_state(temp_dir, LocalState(db_suffix="misty_otter"))
        assert read_local_state(temp_dir).db_suffix == "misty_otter"

    def test_empty_value_does_not_clobber(self, temp_dir):
        """Writing an empty suffix keeps the stored one and other keys."""
        (temp_dir / ".arbor.local").write_text("db_suffix: brave_fox\nother: value\n")
        write_local_state(temp_dir, LocalState())
        assert read_local_state(temp_dir).db_suffix == "brave_fox"
        assert "other: value" in (temp_dir / ".arbor.local").read_text()

    def test_malformed_file(self, temp_dir):
        """A non-mapping local state is a config error."""
        (temp_dir / ".arbor.local").write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            read_local_state(temp_dir)


class TestMigration:
    """Test moving db_suffix out of arbor.yaml."""

    def test_moves_suffix(self, temp_dir):
        """The suffix moves to .arbor.local and leaves the rest alone."""
        (temp_dir / "arbor.yaml").write_text("# keep\npreset: php\ndb_suffix: calm_owl\n")

        assert migrate_db_suffix_to_local(temp_dir) is True

        assert read_local_state(temp_dir).db_suffix == "calm_owl"
        text = (temp_dir / "arbor.yaml").read_text()
        assert "db_suffix" not in text
        assert "# keep" in text
        assert "preset: php" in text

    def test_second_run_is_noop(self, temp_dir):
        """Running the migration twice changes nothing the second time."""
        (temp_dir / "arbor.yaml").write_text("db_suffix: calm_owl\n")
        migrate_db_suffix_to_local(temp_dir)
        before = (temp_dir / "arbor.yaml").read_text()

        assert migrate_db_suffix_to_local(temp_dir) is False
        assert (temp_dir / "arbor.yaml").read_text() == before

    def test_no_config(self, temp_dir):
        """No arbor.yaml means nothing to migrate."""
        assert migrate_db_suffix_to_local(temp_dir) is False
