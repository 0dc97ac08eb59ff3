#tests\test_admission_gate.py

"""Test the admission gate and remote source verification."""

import pytest
import requests

from provisioner.core.errors import AdmissionError
from provisioner.manifest.sources import SourceVerifier
from provisioner.policy.gate import AdmissionGate


class StubResponse:
    def __init__(self, status_code):
        self.status_code = status_code

    @property
    def ok(self):
        return 200 <= self.status_code < 400


class StubSession:
    """Answers by URL; records requested URLs."""

    def __init__(self, responses=None, error=None):
        self.responses = responses or {}
        self.error = error
        self.requested = []

    def _answer(self, url, **kwargs):
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return StubResponse(self.responses.get(url, 404))

    get = _answer
    head = _answer


class TestAdmissionGate:
    """Schema, policy and naming combined."""

    def test_admits_valid_manifest(self, gate, manifest_data):
        """Test a valid manifest is admitted with its warnings."""
        decision = gate.review(manifest_data())

        assert decision.admitted is True
        assert decision.manifest.name == "demo"
        assert len(decision.warnings) == 1

    def test_suffix_token_rejected_before_reconcile(self, gate, manifest_data):
        """Test a '-p' name never reaches the reconciler."""
        decision = gate.review(manifest_data(name="demo-p"))

        assert decision.admitted is False
        assert decision.manifest is None
        assert [issue.path for issue in decision.errors] == ["/metadata/name"]

    def test_naming_reported_with_schema_errors(self, gate, manifest_data):
        """Test naming denials are reported even when the schema fails."""
        data = manifest_data(name="admin", resources={"size": "XXL"})

        decision = gate.review(data)

        messages = [issue.message for issue in decision.errors]
        assert any("reserved" in message for message in messages)
        assert any(issue.path == "/spec/resources/size" for issue in decision.errors)

    def test_compose_denial_blocks_admission(self, gate, manifest_data):
        """Test a privileged compose service blocks an otherwise valid manifest."""
        compose = {"services": {"web": {"image": "nginx"}, "agent": {"privileged": True}}}

        decision = gate.review(manifest_data(), compose)

        assert decision.admitted is False
        assert decision.errors[0].path == "/services/agent/privileged"

    def test_malformed_metadata(self, gate):
        """Test a document with non-mapping metadata is rejected without crashing."""
        decision = gate.review({"metadata": "demo"})

        assert decision.admitted is False
        assert decision.errors

    def test_admit_raises(self, gate, manifest_data):
        """Test admit raises AdmissionError carrying every issue."""
        with pytest.raises(AdmissionError) as excinfo:
            gate.admit(manifest_data(name="www"))

        assert excinfo.value.issues[0].path == "/metadata/name"

    def test_admit_returns_manifest(self, gate, manifest_data):
        """Test admit returns the parsed manifest."""
        manifest = gate.admit(manifest_data())

        assert manifest.spec.resources.size.value == "S"


class TestSourceVerification:
    """GitHub and Docker Hub checks behind the gate."""

    def test_missing_github_repo_is_error(self, validator, policy, manifest_data):
        """Test a 404 from GitHub rejects the manifest."""
        verifier = SourceVerifier(session=StubSession())
        gate = AdmissionGate(validator, policy, source_verifier=verifier)
        source = {"github": {"owner": "tini-works", "repo": "ghost", "branch": "release"}}

        decision = gate.review(manifest_data(source=source, healthCheck={"path": "/", "port": 80}))

        assert decision.admitted is False
        assert decision.errors[0].path == "/spec/source/github"

    def test_existing_docker_tag(self, validator, policy, manifest_data):
        """Test an existing Docker Hub tag passes."""
        session = StubSession({
            "https://hub.docker.com/v2/repositories/library/nginx/tags/latest": 200,
        })
        gate = AdmissionGate(validator, policy, source_verifier=SourceVerifier(session=session))

        decision = gate.review(manifest_data())

        assert decision.admitted is True
        assert session.requested == ["https://hub.docker.com/v2/repositories/library/nginx/tags/latest"]

    def test_missing_docker_tag(self, make_manifest):
        """Test an unknown tag of an existing repository is reported as such."""
        session = StubSession({"https://hub.docker.com/v2/repositories/library/nginx": 200})

        check = SourceVerifier(session=session).verify(make_manifest())

        assert len(check.errors) == 1
        assert "Tag 'latest' not found" in check.errors[0].message

    def test_network_failure_is_warning(self, make_manifest):
        """Test an unreachable registry only warns."""
        session = StubSession(error=requests.exceptions.ConnectionError("down"))

        check = SourceVerifier(session=session).verify(make_manifest())

        assert check.errors == []
        assert len(check.warnings) == 1

    def test_other_registries_skipped(self, make_manifest):
        """Test images outside Docker Hub are not checked."""
        session = StubSession()
        manifest = make_manifest(source={"docker": {"image": "ghcr.io/tini-works/api", "tag": "1.0"}})

        check = SourceVerifier(session=session).verify(manifest)

        assert check.errors == []
        assert session.requested == []

    def test_verifier_skipped_when_denied(self, validator, policy, manifest_data):
        """Test no network call is made for a manifest already denied."""
        session = StubSession()
        gate = AdmissionGate(validator, policy, source_verifier=SourceVerifier(session=session))

        gate.review(manifest_data(name="admin"))

        assert session.requested == []
