# provisioner/reconciler/quotas.py

from dataclasses import dataclass
from typing import Dict

from provisioner.manifest.schemas import ResourceSize


@dataclass(frozen=True)
class Quota:
    """Limits in the platform's raw format: nanocpus and bytes, as strings."""
    cpu_limit: str
    memory_limit: str


QUOTAS: Dict[ResourceSize, Quota] = {
    ResourceSize.S: Quota(cpu_limit="500000000", memory_limit="536870912"),    # 0.5 CPU, 512MB
    ResourceSize.M: Quota(cpu_limit="1000000000", memory_limit="1073741824"),  # 1 CPU, 1GB
    ResourceSize.L: Quota(cpu_limit="2000000000", memory_limit="2147483648"),  # 2 CPU, 2GB
}


def quota_for(size: ResourceSize) -> Quota:
    return QUOTAS[size]
