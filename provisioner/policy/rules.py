# provisioner/policy/rules.py
"""
Deny and warn rules.

Every rule is a plain function listed in one of the rule tables below, so the
full policy can be enumerated and each rule tested on its own. Rules only fire
on explicit values: an absent field never produces a violation.
"""

from typing import Any, Callable, List, Mapping, Optional

from provisioner.core.errors import Issue
from provisioner.manifest.schemas import Manifest, ResourceSize, SourceType
from provisioner.policy.authority import SubdomainAuthority


# Suffix the platform appends to every subdomain ("demo" -> "demo-p.<suffix>")
APPENDED_SUFFIX_TOKEN = "-p"

DANGEROUS_CAPABILITIES = frozenset({
    "ALL",
    "SYS_ADMIN",
    "SYS_MODULE",
    "SYS_PTRACE",
    "SYS_RAWIO",
    "SYS_BOOT",
    "SYS_TIME",
    "NET_ADMIN",
    "DAC_READ_SEARCH",
    "MAC_ADMIN",
    "MAC_OVERRIDE",
    "BPF",
    "PERFMON",
})

MUTABLE_TAGS = frozenset({"latest"})
DEFAULT_BRANCHES = frozenset({"main", "master"})


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _is_host(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() == "host"


# ============================================
# SECURITY (compose services)
# ============================================

SecurityRule = Callable[[str, Mapping[str, Any]], List[Issue]]


def deny_privileged(service_name: str, service: Mapping[str, Any]) -> List[Issue]:
    if service.get("privileged") is True:
        return [Issue(
            f"/services/{service_name}/privileged",
            f"service '{service_name}' must not run in privileged mode",
        )]
    return []


def deny_host_namespaces(service_name: str, service: Mapping[str, Any]) -> List[Issue]:
    issues = []
    for key, label in (
        ("network_mode", "network"),
        ("pid", "PID"),
        ("ipc", "IPC"),
        ("userns_mode", "user"),
    ):
        if _is_host(service.get(key)):
            issues.append(Issue(
                f"/services/{service_name}/{key}",
                f"service '{service_name}' must not share the host {label} namespace",
            ))
    return issues


def deny_dangerous_capabilities(service_name: str, service: Mapping[str, Any]) -> List[Issue]:
    issues = []
    for capability in _as_list(service.get("cap_add")):
        if not isinstance(capability, str):
            continue
        normalized = capability.strip().upper()
        if normalized.startswith("CAP_"):
            normalized = normalized[len("CAP_"):]
        if normalized in DANGEROUS_CAPABILITIES:
            issues.append(Issue(
                f"/services/{service_name}/cap_add",
                f"service '{service_name}' adds dangerous capability {capability}",
            ))
    return issues


def deny_host_devices(service_name: str, service: Mapping[str, Any]) -> List[Issue]:
    if _as_list(service.get("devices")):
        return [Issue(
            f"/services/{service_name}/devices",
            f"service '{service_name}' must not bind host devices",
        )]
    return []


def deny_unconfined_security_opt(service_name: str, service: Mapping[str, Any]) -> List[Issue]:
    for option in _as_list(service.get("security_opt")):
        if isinstance(option, str) and "unconfined" in option.lower():
            return [Issue(
                f"/services/{service_name}/security_opt",
                f"service '{service_name}' disables confinement ({option})",
            )]
    return []


def deny_sysctls(service_name: str, service: Mapping[str, Any]) -> List[Issue]:
    if service.get("sysctls"):
        return [Issue(
            f"/services/{service_name}/sysctls",
            f"service '{service_name}' must not override kernel parameters (sysctls)",
        )]
    return []


def deny_cgroup_parent(service_name: str, service: Mapping[str, Any]) -> List[Issue]:
    if service.get("cgroup_parent"):
        return [Issue(
            f"/services/{service_name}/cgroup_parent",
            f"service '{service_name}' must not override cgroup_parent",
        )]
    return []


SECURITY_RULES: List[SecurityRule] = [
    deny_privileged,
    deny_host_namespaces,
    deny_dangerous_capabilities,
    deny_host_devices,
    deny_unconfined_security_opt,
    deny_sysctls,
    deny_cgroup_parent,
]


# ============================================
# NAMING
# ============================================

NamingRule = Callable[[str, SubdomainAuthority], Optional[Issue]]


def deny_reserved_name(name: str, authority: SubdomainAuthority) -> Optional[Issue]:
    if authority.is_reserved(name):
        return Issue("/metadata/name", f"Subdomain '{name.lower()}' is reserved for platform use")
    return None


def deny_blocked_prefix(name: str, authority: SubdomainAuthority) -> Optional[Issue]:
    prefix = authority.matches_blocked_prefix(name)
    if prefix is not None:
        return Issue(
            "/metadata/name",
            f"Subdomain '{name.lower()}' matches blocked prefix '{prefix}'",
        )
    return None


def deny_appended_suffix(name: str, authority: SubdomainAuthority) -> Optional[Issue]:
    if name.lower().endswith(APPENDED_SUFFIX_TOKEN):
        return Issue(
            "/metadata/name",
            f"Subdomain '{name.lower()}' must not end with '{APPENDED_SUFFIX_TOKEN}'; "
            f"the platform appends it",
        )
    return None


NAMING_RULES: List[NamingRule] = [
    deny_reserved_name,
    deny_blocked_prefix,
    deny_appended_suffix,
]


# ============================================
# WARNINGS
# ============================================

WarnRule = Callable[[Manifest], Optional[Issue]]


def warn_missing_health_check(manifest: Manifest) -> Optional[Issue]:
    # Prebuilt images carry their own HEALTHCHECK; only platform builds are flagged
    if manifest.spec.source.type == SourceType.GITHUB and manifest.spec.health_check is None:
        return Issue("/spec/healthCheck", "No health check defined - consider adding one for reliability")
    return None


def warn_mutable_image_tag(manifest: Manifest) -> Optional[Issue]:
    docker = manifest.spec.source.docker
    if docker is not None and docker.tag.lower() in MUTABLE_TAGS:
        return Issue(
            "/spec/source/docker/tag",
            f"Using '{docker.tag}' tag may cause unexpected updates - consider using a specific version",
        )
    return None


def warn_default_branch(manifest: Manifest) -> Optional[Issue]:
    github = manifest.spec.source.github
    if github is not None and github.branch in DEFAULT_BRANCHES:
        return Issue(
            "/spec/source/github/branch",
            f"Using default branch '{github.branch}' - consider using a specific release branch",
        )
    return None


def warn_large_resource_size(manifest: Manifest) -> Optional[Issue]:
    if manifest.spec.resources.size == ResourceSize.L:
        return Issue("/spec/resources/size", "Size 'L' reserves 2 CPUs and 2GB of shared capacity")
    return None


WARN_RULES: List[WarnRule] = [
    warn_missing_health_check,
    warn_mutable_image_tag,
    warn_default_branch,
    warn_large_resource_size,
]
