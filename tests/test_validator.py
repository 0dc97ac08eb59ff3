#tests\test_validator.py

"""Test structural manifest validation."""

import pytest

from provisioner.manifest.schemas import SourceType


def paths(result):
    return [issue.path for issue in result.structural_errors]


class TestValidManifests:
    """Manifests that pass structural validation."""

    def test_minimal_docker_manifest(self, validator, manifest_data):
        """Test the minimal docker manifest is valid and parsed."""
        result = validator.validate(manifest_data())

        assert result.valid is True
        assert result.structural_errors == []
        assert result.manifest.name == "demo"
        assert result.manifest.spec.source.docker.reference == "nginx:latest"

    def test_source_type_is_inferred(self, validator, manifest_data):
        """Test `type` may be omitted when exactly one block is present."""
        data = manifest_data(source={"github": {"owner": "tini-works", "repo": "demo", "branch": "dev"}})

        result = validator.validate(data)

        assert result.valid is True
        assert result.manifest.spec.source.type == SourceType.GITHUB

    def test_env_numbers_are_coerced_to_strings(self, validator, manifest_data):
        """Test numeric env values become strings."""
        result = validator.validate(manifest_data(env={"PORT": 8080, "DEBUG": "1"}))

        assert result.valid is True
        assert result.manifest.spec.env.variables == {"PORT": "8080", "DEBUG": "1"}

    def test_health_check_on_declared_port(self, validator, manifest_data):
        """Test a health check on a declared port is accepted."""
        data = manifest_data(healthCheck={"path": "/health", "port": 80})

        assert validator.validate(data).valid is True

    def test_health_check_on_quoted_port(self, validator, manifest_data):
        """Test a quoted containerPort still matches the health check port."""
        data = manifest_data(
            ports=[{"containerPort": "8080"}],
            healthCheck={"path": "/health", "port": 8080},
        )

        result = validator.validate(data)

        assert result.valid is True
        assert result.manifest.spec.primary_port == 8080

    def test_routing_inside_managed_suffix(self, validator, manifest_data):
        """Test routing hostnames under the managed suffix are accepted."""
        data = manifest_data(routing={"hostnames": ["docs.apps.example.com"]})

        assert validator.validate(data).valid is True


class TestStructuralErrors:
    """Violations are collected and located by path."""

    def test_not_a_mapping(self, validator):
        """Test a non-mapping document is rejected at the root."""
        result = validator.validate(["not", "a", "mapping"])

        assert result.valid is False
        assert paths(result) == ["/"]

    def test_collects_all_errors_in_one_pass(self, validator, manifest_data):
        """Test several problems are reported together."""
        data = manifest_data(resources={"size": "XL"}, ports=[{"containerPort": 70000}])
        data["metadata"]["name"] = "Bad_Name"
        data["apiVersion"] = "v2"

        result = validator.validate(data)

        assert result.valid is False
        assert result.manifest is None
        assert "/apiVersion" in paths(result)
        assert "/metadata/name" in paths(result)
        assert "/spec/resources/size" in paths(result)
        assert "/spec/ports/0/containerPort" in paths(result)

    @pytest.mark.parametrize("name", ["ab", "a" * 64, "-demo", "demo-", "Demo"])
    def test_invalid_names(self, validator, manifest_data, name):
        """Test names outside the DNS label rules are rejected."""
        result = validator.validate(manifest_data(name=name))

        assert "/metadata/name" in paths(result)

    def test_both_source_blocks(self, validator, manifest_data):
        """Test a source with both github and docker is rejected."""
        source = {
            "github": {"owner": "tini-works", "repo": "demo", "branch": "dev"},
            "docker": {"image": "nginx", "tag": "1.25"},
        }
        result = validator.validate(manifest_data(source=source))

        assert result.valid is False
        messages = [issue.message for issue in result.structural_errors]
        assert "exactly one of 'github' or 'docker' must be set" in messages

    def test_source_type_mismatch(self, validator, manifest_data):
        """Test an explicit type must match the present block."""
        source = {"type": "github", "docker": {"image": "nginx", "tag": "1.25"}}

        result = validator.validate(manifest_data(source=source))

        assert result.valid is False
        assert paths(result) == ["/spec/source"]

    def test_ports_required(self, validator, manifest_data):
        """Test at least one port must be declared."""
        result = validator.validate(manifest_data(ports=[]))

        assert "/spec/ports" in paths(result)

    def test_unknown_field_rejected(self, validator, manifest_data):
        """Test unknown keys are not silently accepted."""
        result = validator.validate(manifest_data(replicas=3))

        assert "/spec/replicas" in paths(result)

    def test_raw_limits_not_accepted(self, validator, manifest_data):
        """Test resources only accept a size."""
        result = validator.validate(manifest_data(resources={"size": "S", "cpu": "4"}))

        assert "/spec/resources/cpu" in paths(result)

    def test_invalid_env_key(self, validator, manifest_data):
        """Test env keys must be valid variable names."""
        result = validator.validate(manifest_data(env={"1BAD": "x"}))

        assert result.valid is False
        assert paths(result) == ["/spec/env"]


class TestCrossFieldChecks:
    """Health check port and routing hostname invariants."""

    def test_health_check_port_must_be_declared(self, validator, manifest_data):
        """Test a health check on an undeclared port is rejected."""
        data = manifest_data(healthCheck={"path": "/health", "port": 8080})

        result = validator.validate(data)

        assert result.valid is False
        assert paths(result) == ["/spec/healthCheck/port"]

    def test_health_check_port_reported_with_other_errors(self, validator, manifest_data):
        """Test the cross check still runs when the schema fails elsewhere."""
        data = manifest_data(healthCheck={"path": "/health", "port": 8080}, resources={"size": "XL"})

        result = validator.validate(data)

        assert "/spec/healthCheck/port" in paths(result)
        assert "/spec/resources/size" in paths(result)

    def test_routing_outside_suffix(self, validator, manifest_data):
        """Test hostnames outside the managed suffix are rejected."""
        data = manifest_data(routing={"hostnames": ["docs.apps.example.com", "evil.com"]})

        result = validator.validate(data)

        assert paths(result) == ["/spec/routing/hostnames/1"]

    def test_suffix_lookalike_rejected(self, validator, manifest_data):
        """Test a host that only ends with the suffix text is rejected."""
        data = manifest_data(routing={"hostnames": ["evilapps.example.com"]})

        assert validator.validate(data).valid is False
