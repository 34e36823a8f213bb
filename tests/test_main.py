"""
Tests for the __main__.py entrypoint to the library as an executable
"""
# Standard
from unittest import mock
import argparse
import threading

# Third Party
import pytest
import yaml

# First Party
import alog

# Local
from profile_controller import config
from profile_controller.__main__ import main
from profile_controller.cmd import RunControllerCmd, run_controller_cmd
from profile_controller.cmd.base import add_library_config_args
from profile_controller.exceptions import ConfigError, TransientError
from profile_controller.log_format import ControllerJsonFormatter
from profile_controller.test_helpers.helpers import (
    POD_DEFAULT_API_VERSION,
    POD_DEFAULT_KIND,
    library_config,
    make_profile,
    wait_for,
)

log = alog.use_channel("TEST")

EXPECTED_POLICY = """
#
# Policy for Kubeflow profile: profile-test
# (policy managed by the custom Kubeflow Profiles controller)
#

# Grant full access to the KV created for this profile
path "kv_profile-test/*" {
\tcapabilities = ["create", "update", "delete", "read", "list"]
}

# Grant access to MinIO keys associated with this profile
path "minio1/keys/profile-test" {
\tcapabilities = ["read"]
}
path "minio2/keys/profile-test" {
\tcapabilities = ["read"]
}
"""

## Helpers #####################################################################


@pytest.fixture
def alog_configure():
    with mock.patch("alog.configure") as configure_mock:
        yield configure_mock


@pytest.fixture
def restore_config():
    """Revert any config the command line changes"""
    with library_config(
        log_level=config.log_level,
        log_json=config.log_json,
        dry_run=config.dry_run,
        vault={},
        controller={},
        events={},
    ):
        yield


def write_resources(directory, *resources):
    with open(directory / "resources.yaml", "w", encoding="utf-8") as handle:
        yaml.safe_dump_all(list(resources) + [None], handle)


## Render Policy ###############################################################


def test_render_policy(capsys, alog_configure, restore_config):
    """Make sure render-policy prints the policy document"""
    main(["render-policy", "-p", "profile-test", "-s", "minio1", "-s", "minio2"])
    assert capsys.readouterr().out == EXPECTED_POLICY


def test_render_policy_config_override(capsys, alog_configure, restore_config):
    """Make sure library config flags reach the command"""
    main(
        [
            "render-policy",
            "--profile",
            "alice",
            "--vault.kv_prefix",
            "secret_",
            "--vault.minio_instances",
            "minio3",
        ]
    )
    output = capsys.readouterr().out
    assert 'path "secret_alice/*" {' in output
    assert 'path "minio3/keys/alice" {' in output
    assert config.vault.kv_prefix == "secret_"


def test_render_policy_storage_path(capsys, alog_configure, restore_config):
    """Make sure the storage path can be given explicitly"""
    main(["render-policy", "-p", "alice", "--storage-path", "custom"])
    assert 'path "custom/*" {' in capsys.readouterr().out


def test_render_policy_requires_profile(alog_configure, restore_config):
    """Make sure the profile is required"""
    with pytest.raises(SystemExit):
        main(["render-policy"])


def test_json_logging(capsys, alog_configure, restore_config):
    """Make sure the json formatter is used when requested"""
    main(["render-policy", "-p", "alice", "--log_json", "--log_level", "debug"])
    kwargs = alog_configure.call_args.kwargs
    assert isinstance(kwargs["formatter"], ControllerJsonFormatter)
    assert kwargs["default_level"] == "debug"


## Config Args #################################################################


def test_invalid_config_flag(alog_configure, restore_config):
    """Make sure a flag that breaks a config constraint is rejected before the
    command runs
    """
    with mock.patch.object(RunControllerCmd, "run") as run_mock:
        with pytest.raises(ConfigError, match="controller.workers"):
            main(["run", "--controller.workers", "0"])
    assert not run_mock.called


def test_default_command(alog_configure, restore_config):
    """Make sure the controller is run when no command is named"""
    with mock.patch.object(RunControllerCmd, "run") as run_mock:
        main(["--dry_run", "--controller.workers", "3"])
    args = run_mock.call_args.args[0]
    assert args.resource_dir is None
    assert config.dry_run is True
    assert config.controller.workers == 3


def test_add_library_config_args():
    """Make sure every config leaf gets a typed flag"""
    parser = argparse.ArgumentParser()
    setters = add_library_config_args(parser)
    assert setters["workqueue_qps"] == ["workqueue", "qps"]
    args = parser.parse_args(
        [
            "--workqueue.qps",
            "2.5",
            "--controller.workers",
            "4",
            "--controller.resync_period",
            "30",
            "--dry_run",
        ]
    )
    assert args.workqueue_qps == 2.5
    assert args.controller_workers == 4
    assert args.controller_resync_period == 30.0
    assert args.dry_run is True
    assert args.vault_minio_instances == []


## Run #########################################################################


def test_run_resource_dir_requires_dry_run(tmp_path, alog_configure, restore_config):
    """Make sure a resource dir is rejected outside of dry run"""
    with pytest.raises(ConfigError):
        main(["run", "--resource_dir", str(tmp_path)])


def test_parse_resource_dir(tmp_path):
    """Make sure yaml files are read in order and empty documents skipped"""
    write_resources(tmp_path, make_profile("alice"), make_profile("bob"))
    (tmp_path / "notes.txt").write_text("not yaml")
    resources = RunControllerCmd._parse_resource_dir(str(tmp_path))
    assert [res["metadata"]["name"] for res in resources] == ["alice", "bob"]
    assert RunControllerCmd._parse_resource_dir(None) == []


@pytest.mark.timeout(15)
def test_run_dry_run(tmp_path):
    """Make sure a dry run starts the controller against the given resources
    and stops on request
    """
    write_resources(tmp_path, make_profile("alice"))
    stores = []
    real_build = run_controller_cmd.build_profile_controller

    def capture_store(store, **kwargs):
        stores.append(store)
        return real_build(store, **kwargs)

    cmd = RunControllerCmd()
    runner = threading.Thread(
        target=cmd.run, args=(argparse.Namespace(resource_dir=str(tmp_path)),)
    )
    with library_config(
        dry_run=True, vault={"minio_instances": ["minio1"]}, events={"enabled": False}
    ), mock.patch.object(
        run_controller_cmd, "build_profile_controller", side_effect=capture_store
    ):
        runner.start()
        try:
            assert wait_for(lambda: stores, timeout=5)
            assert wait_for(
                lambda: stores[0]
                .list(POD_DEFAULT_KIND, POD_DEFAULT_API_VERSION, "alice")[0],
                timeout=5,
            )
        finally:
            cmd.stop_event.set()
            runner.join(timeout=5)
    assert not runner.is_alive()


@pytest.mark.timeout(10)
def test_run_caches_never_sync():
    """Make sure caches that never sync surface as an error"""
    cmd = RunControllerCmd()
    with library_config(
        dry_run=True, controller={"cache_sync_timeout": 0.2}
    ), mock.patch.object(run_controller_cmd.signal, "signal"), mock.patch.object(
        run_controller_cmd.DryRunResourceStore,
        "list",
        side_effect=TransientError("no list"),
    ):
        with pytest.raises(TransientError):
            cmd.run(argparse.Namespace(resource_dir=None))
