#tests\test_maintenance.py

"""Test project listing and duplicate cleanup."""

from provisioner.core.errors import RemoteCallError
from provisioner.maintenance.projects import dedupe_projects, summarize_projects


def seed_duplicates(platform):
    """Three projects named 'provisioner'; the second holds two apps."""
    first = platform.create_project("provisioner")
    second = platform.create_project("provisioner")
    third = platform.create_project("provisioner")
    platform.create_project("other")

    environment_id = second.default_environment.environment_id
    platform.create_application("alpha", environment_id)
    platform.create_application("beta", environment_id)
    return first, second, third


class TestSummarizeProjects:
    def test_flags_duplicates(self, platform):
        """Test duplicates are flagged with application counts."""
        seed_duplicates(platform)

        summaries = summarize_projects(platform)

        assert [s.duplicate for s in summaries] == [True, True, True, False]
        assert [s.application_count for s in summaries] == [0, 2, 0, 0]


class TestDedupeProjects:
    """Keeps the fullest project per name."""

    def test_keeps_project_with_most_apps(self, platform):
        """Test the project with applications survives."""
        first, second, third = seed_duplicates(platform)

        report = dedupe_projects(platform)

        assert report.kept == {"provisioner": second.project_id}
        assert sorted(report.deleted) == sorted([first.project_id, third.project_id])
        assert [p.name for p in platform.list_projects()] == ["provisioner", "other"]

    def test_dry_run(self, platform):
        """Test dry run deletes nothing."""
        seed_duplicates(platform)

        report = dedupe_projects(platform, dry_run=True)

        assert len(report.planned) == 2
        assert report.deleted == []
        assert platform.calls_to("delete_project") == []

    def test_tie_keeps_lowest_id(self, platform):
        """Test empty duplicates keep the lowest id."""
        first = platform.create_project("provisioner")
        platform.create_project("provisioner")

        report = dedupe_projects(platform)

        assert report.kept["provisioner"] == first.project_id

    def test_delete_failure_is_counted(self, platform):
        """Test a failed delete is reported and the job continues."""
        seed_duplicates(platform)
        platform.fail_on["delete_project"] = RemoteCallError("project.remove failed")

        report = dedupe_projects(platform)

        assert report.success is False
        assert len(report.failed) == 2

    def test_no_duplicates(self, platform):
        """Test a clean platform is untouched."""
        platform.create_project("provisioner")

        report = dedupe_projects(platform)

        assert report.kept == {}
        assert report.success is True
