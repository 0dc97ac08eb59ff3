#provisioner\api\container.py
from functools import lru_cache

from provisioner.config.settings import get_settings
from provisioner.container import build_admission_gate
from provisioner.platform.client import create_platform_client


# Singletons, built on first request
@lru_cache
def get_admission_gate():
    return build_admission_gate(get_settings())


@lru_cache
def get_platform_client():
    return create_platform_client(get_settings())


def get_project_name() -> str:
    return get_settings().project_name
