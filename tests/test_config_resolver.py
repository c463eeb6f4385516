"""Tests for merging the configuration layers."""

import logging
from dataclasses import replace

import pytest

from conftest import checkout_new_branch, make_git_repo, write_yaml
from pgbranch.errors import ConfigError, EnvVarError
from pgbranch.models.config import BaseConfig
from pgbranch.models.overlay import (
    EnvOverlay,
    LocalBehaviorOverlay,
    LocalDatabaseOverlay,
    LocalGitOverlay,
    LocalOverlay,
)
from pgbranch.models.post_command import SimpleCommand
from pgbranch.services.config_resolver import (
    EffectiveConfig,
    load_effective_config,
    matches_disable_pattern,
    validate_config,
)


def base_with_host(host: str) -> BaseConfig:
    config = BaseConfig()
    return replace(config, database=replace(config.database, host=host))


def test_environment_beats_local_beats_base():
    base = base_with_host("base.example")
    local = LocalOverlay(database=LocalDatabaseOverlay(host="local.example"))

    assert EffectiveConfig(base, None, EnvOverlay()).merged().database.host == "base.example"
    assert EffectiveConfig(base, local, EnvOverlay()).merged().database.host == "local.example"
    effective = EffectiveConfig(base, local, EnvOverlay(database_host="env.example"))
    assert effective.merged().database.host == "env.example"


def test_unset_overlay_fields_keep_lower_layers():
    base = base_with_host("base.example")
    local = LocalOverlay(database=LocalDatabaseOverlay(port=6000))
    merged = EffectiveConfig(base, local, EnvOverlay(database_user="envuser")).merged()

    assert merged.database.host == "base.example"
    assert merged.database.port == 6000
    assert merged.database.user == "envuser"
    assert merged.database.template_database == "template0"


def test_env_git_overrides():
    env = EnvOverlay(auto_create=False, auto_switch=False, branch_filter_regex="^x")
    merged = EffectiveConfig(BaseConfig(), None, env).merged()
    assert merged.git.auto_create_on_branch is False
    assert merged.git.auto_switch_on_branch is False
    assert merged.git.branch_filter_regex == "^x"


def test_local_post_commands_replace_base_list():
    base = replace(BaseConfig(), post_commands=(SimpleCommand("a"), SimpleCommand("b")))
    local = LocalOverlay(post_commands=(SimpleCommand("c"),))
    assert EffectiveConfig(base, local, EnvOverlay()).merged().post_commands == (SimpleCommand("c"),)
    assert EffectiveConfig(base, LocalOverlay(), EnvOverlay()).merged().post_commands == base.post_commands


def test_merged_is_recomputed_and_base_untouched():
    base = BaseConfig()
    effective = EffectiveConfig(base, LocalOverlay(git=LocalGitOverlay(main_branch="trunk")), EnvOverlay())
    first = effective.merged()
    assert first == effective.merged()
    assert first is not effective.merged()
    assert base.git.main_branch == "main"


@pytest.mark.parametrize(
    ("env_disabled", "local_disabled", "expected"),
    [(None, None, False), (None, True, True), (False, True, False), (True, False, True)],
)
def test_disabled_precedence(env_disabled, local_disabled, expected):
    effective = EffectiveConfig(BaseConfig(), LocalOverlay(disabled=local_disabled), EnvOverlay(disabled=env_disabled))
    assert effective.disabled is expected


def test_flags_default_to_false():
    effective = EffectiveConfig(BaseConfig(), None, EnvOverlay())
    assert effective.disabled is False
    assert effective.skip_hooks is False
    assert effective.current_branch_disabled is False


def test_disabled_branches_are_a_union():
    effective = EffectiveConfig(
        BaseConfig(),
        LocalOverlay(disabled_branches=("main",)),
        EnvOverlay(disabled_branches=("feature/*",)),
    )
    assert effective.is_branch_disabled("main")
    assert effective.is_branch_disabled("feature/login")
    assert not effective.is_branch_disabled("bugfix/login")


@pytest.mark.parametrize(
    ("branch", "pattern", "expected"),
    [
        ("main", "main", True),
        ("main2", "main", False),
        ("feature/x", "feature/*", True),
        ("my-feature/x", "feature/*", True),
        ("release-1.0", "release-*", True),
        ("hotfix", "*fix", True),
        ("anything", "*", True),
    ],
)
def test_matches_disable_pattern(branch, pattern, expected):
    assert matches_disable_pattern(branch, pattern) is expected


def test_unparsable_disable_pattern_matches_nothing(caplog):
    with caplog.at_level(logging.WARNING, logger="pgbranch"):
        assert not matches_disable_pattern("feature(x", "feature(*")
    assert "Invalid disabled branch pattern" in caplog.text


def test_current_branch_disabled_by_env_skips_git():
    def explode():
        raise AssertionError("Git should not be consulted")

    effective = EffectiveConfig(BaseConfig(), None, EnvOverlay(current_branch_disabled=True),
                                current_branch_provider=explode)
    assert effective.check_current_git_branch_disabled()
    assert effective.should_exit_early()


def test_current_branch_checked_against_patterns():
    env = EnvOverlay(disabled_branches=("wip/*",))
    assert EffectiveConfig(BaseConfig(), None, env,
                           current_branch_provider=lambda: "wip/spike").should_exit_early()
    assert not EffectiveConfig(BaseConfig(), None, env,
                               current_branch_provider=lambda: "feature/x").should_exit_early()
    assert not EffectiveConfig(BaseConfig(), None, env,
                               current_branch_provider=lambda: None).should_exit_early()


def test_git_provider_reads_repository(project_dir):
    repo = make_git_repo(project_dir)
    checkout_new_branch(repo, "wip/thing")
    effective = EffectiveConfig(BaseConfig(), LocalOverlay(disabled_branches=("wip/*",)), EnvOverlay(),
                                project_dir=project_dir)
    assert effective.current_git_branch() == "wip/thing"
    assert effective.check_current_git_branch_disabled()


def test_no_repository_means_not_disabled(project_dir):
    effective = EffectiveConfig(BaseConfig(), LocalOverlay(disabled_branches=("*",)), EnvOverlay(),
                                project_dir=project_dir)
    assert effective.current_git_branch() is None
    assert not effective.check_current_git_branch_disabled()


def test_validate_config_accepts_defaults():
    validate_config(BaseConfig())


@pytest.mark.parametrize(
    "database_changes",
    [{"host": ""}, {"user": ""}, {"template_database": ""}, {"database_prefix": ""}, {"port": 0}, {"port": 70000}],
)
def test_validate_config_rejects_bad_values(database_changes):
    config = BaseConfig()
    config = replace(config, database=replace(config.database, **database_changes))
    with pytest.raises(ConfigError):
        validate_config(config)


def test_load_effective_config_reads_all_layers(project_dir):
    write_yaml(project_dir / ".pgbranch.yml", {"database": {"host": "base", "user": "base_user"}})
    write_yaml(project_dir / ".pgbranch.local.yml", {"database": {"host": "local"}, "disabled": False})
    nested = project_dir / "app"
    nested.mkdir()

    effective = load_effective_config(nested, environ={"PGBRANCH_DATABASE_USER": "env_user"})

    merged = effective.merged()
    assert effective.config_path == (project_dir / ".pgbranch.yml").resolve()
    assert effective.project_dir == project_dir.resolve()
    assert merged.database.host == "local"
    assert merged.database.user == "env_user"


def test_load_effective_config_bad_env_is_fatal(project_dir):
    with pytest.raises(EnvVarError):
        load_effective_config(project_dir, environ={"PGBRANCH_DISABLED": "perhaps"})


def test_ci_host_scenario():
    base = base_with_host("localhost")
    local = LocalOverlay(database=LocalDatabaseOverlay(host="db.local"))

    assert EffectiveConfig(base, local, EnvOverlay(database_host="ci-host")).merged().database.host == "ci-host"
    assert EffectiveConfig(base, local, EnvOverlay()).merged().database.host == "db.local"
    assert EffectiveConfig(base, None, EnvOverlay()).merged().database.host == "localhost"


def test_release_and_hotfix_union_scenario():
    effective = EffectiveConfig(
        BaseConfig(),
        LocalOverlay(disabled_branches=("hotfix-1",)),
        EnvOverlay(disabled_branches=("release/*",)),
    )
    assert effective.is_branch_disabled("release/2.0")
    assert effective.is_branch_disabled("hotfix-1")
    assert not effective.is_branch_disabled("feature-x")


def test_local_overlay_can_lift_branch_limit():
    config = BaseConfig()
    base = replace(config, behavior=replace(config.behavior, max_branches=5))

    unlimited = LocalOverlay(behavior=LocalBehaviorOverlay(no_branch_limit=True))
    assert EffectiveConfig(base, unlimited, EnvOverlay()).merged().behavior.max_branches is None
    assert EffectiveConfig(base, LocalOverlay(), EnvOverlay()).merged().behavior.max_branches == 5
