#tests\test_batch.py

"""Test sequential batch application, admission failures and removal planning."""

import pytest
import yaml

from provisioner.core.errors import RemoteCallError
from provisioner.reconciler.batch import BatchDriver, ManifestDocument, current_app_names, present_app_names
from provisioner.reconciler.removal import RemovalReconciler
from provisioner.reconciler.results import ErrorKind, ReconciliationResult, exit_code

from conftest import PROJECT_NAME


@pytest.fixture
def driver(gate, reconciler, platform, ledger):
    return BatchDriver(
        gate=gate,
        reconciler=reconciler,
        platform=platform,
        ledger=ledger,
        remover=RemovalReconciler(platform, PROJECT_NAME),
    )


@pytest.fixture
def write_manifest(tmp_path):
    def _write(data, name=None):
        path = tmp_path / "apps" / f"{name or data['metadata']['name']}.yaml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data))
        return path
    return _write


class TestApplyAll:
    """Admitted manifests, one after another."""

    def test_sequential_results(self, driver, make_manifest):
        """Test one result per manifest, in order."""
        results = driver.apply_all([make_manifest("alpha"), make_manifest("beta")])

        assert [r.app_name for r in results] == ["alpha", "beta"]
        assert all(r.success for r in results)
        assert exit_code(results) == 0

    def test_liveness_probe_once(self, driver, platform, make_manifest):
        """Test the platform is probed once before the batch."""
        driver.apply_all([make_manifest("alpha"), make_manifest("beta")])

        assert len(platform.calls_to("health_check")) == 1
        assert platform.calls[0][0] == "health_check"

    def test_unreachable_platform_aborts(self, driver, platform, make_manifest):
        """Test nothing is applied when the probe fails."""
        platform.healthy = False

        with pytest.raises(RemoteCallError):
            driver.apply_all([make_manifest()])

        assert platform.calls_to("create_project") == []

    def test_failure_does_not_block_rest(self, driver, platform, make_manifest):
        """Test an ambiguous manifest fails while the next one succeeds."""
        driver.apply_all([make_manifest("alpha")])
        environment_id = platform.list_projects()[0].default_environment.environment_id
        platform.create_application("alpha", environment_id)

        results = driver.apply_all([make_manifest("alpha"), make_manifest("beta")])

        assert [r.success for r in results] == [False, True]
        assert results[0].error_kind == ErrorKind.AMBIGUITY
        assert exit_code(results) == 1

    def test_unexpected_error_is_contained(self, gate, platform, make_manifest):
        """Test an unexpected exception becomes a failed result."""
        class ExplodingReconciler:
            def reconcile(self, manifest):
                if manifest.name == "alpha":
                    raise KeyError("applicationId")
                return ReconciliationResult(success=True, app_name=manifest.name, subdomain=manifest.name)

        driver = BatchDriver(gate, ExplodingReconciler(), platform)

        results = driver.apply_all([make_manifest("alpha"), make_manifest("beta")])

        assert results[0].error_kind == ErrorKind.UNEXPECTED
        assert results[1].success is True


class TestApplyFiles:
    """Loading, admission and ledger recording of manifest files."""

    def test_apply_files(self, driver, ledger, manifest_data, write_manifest):
        """Test admitted files are applied and recorded."""
        path = write_manifest(manifest_data("alpha"))

        results = driver.apply_files([path])

        assert results[0].success is True
        assert len(results[0].warnings) == 1
        assert ledger.known_app_names() == {"alpha"}
        assert ledger.get("alpha").source_path == str(path)

    def test_rejected_manifest(self, driver, platform, ledger, manifest_data, write_manifest):
        """Test an inadmissible manifest fails without remote mutation."""
        path = write_manifest(manifest_data("admin"))

        results = driver.apply_files([path])

        assert results[0].success is False
        assert results[0].error_kind == ErrorKind.ADMISSION
        assert results[0].issues[0].path == "/metadata/name"
        assert platform.calls_to("create_application") == []
        assert ledger.known_app_names() == set()
        assert ledger.history("admin")[0].success is False

    def test_unparseable_file(self, driver, tmp_path):
        """Test broken YAML becomes a load failure named after the file."""
        path = tmp_path / "apps" / "broken" / "provision.yaml"
        path.parent.mkdir(parents=True)
        path.write_text("metadata: [unclosed\n")

        results = driver.apply_files([path])

        assert results[0].app_name == "broken"
        assert results[0].error_kind == ErrorKind.LOAD

    def test_compose_descriptor_is_checked(self, driver, manifest_data, tmp_path):
        """Test a sibling compose file goes through the security rules."""
        directory = tmp_path / "apps" / "alpha"
        directory.mkdir(parents=True)
        (directory / "provision.yaml").write_text(yaml.safe_dump(manifest_data("alpha")))
        (directory / "docker-compose.yaml").write_text(
            yaml.safe_dump({"services": {"web": {"image": "nginx", "network_mode": "host"}}})
        )

        results = driver.apply_files([directory / "provision.yaml"])

        assert results[0].error_kind == ErrorKind.ADMISSION
        assert results[0].issues[0].path == "/services/web/network_mode"


class TestRemovals:
    """Applications whose manifests disappeared."""

    def test_plan_removals(self, driver, manifest_data, write_manifest):
        """Test names whose manifest was deleted from disk are planned for removal."""
        alpha = write_manifest(manifest_data("alpha"))
        beta = write_manifest(manifest_data("beta"))
        driver.apply_files([alpha, beta])
        beta.unlink()

        assert driver.plan_removals(present_app_names(alpha.parent)) == ["beta"]

    def test_manifest_on_disk_is_not_a_removal(self, driver, manifest_data, write_manifest):
        """Test applying a subset of files plans nothing while the rest stay on disk."""
        alpha = write_manifest(manifest_data("alpha"))
        beta = write_manifest(manifest_data("beta"))
        driver.apply_files([alpha, beta])

        documents = [ManifestDocument.from_file(alpha)]
        present = current_app_names(documents) | present_app_names(alpha.parent)

        assert driver.plan_removals(present) == []

    def test_broken_manifest_is_not_a_removal(self, driver, manifest_data, write_manifest):
        """Test an unreadable manifest still counts as present."""
        alpha = write_manifest(manifest_data("alpha"))
        driver.apply_files([alpha])
        alpha.write_text("::: not yaml [")

        documents = [ManifestDocument.from_file(alpha)]

        assert driver.plan_removals(current_app_names(documents)) == []

    def test_remove_all(self, driver, platform, ledger, manifest_data, write_manifest):
        """Test removals delete remotely and drop the ledger entry."""
        driver.apply_files([write_manifest(manifest_data("alpha"))])

        results = driver.remove_all(["alpha", "ghost"])

        assert [r.success for r in results] == [True, True]
        assert results[1].already_absent is True
        assert ledger.known_app_names() == set()
        assert len(platform.calls_to("delete_application")) == 1

    def test_without_ledger(self, gate, reconciler, platform):
        """Test removal planning is empty without a ledger."""
        driver = BatchDriver(gate, reconciler, platform)

        assert driver.plan_removals(["alpha"]) == []
