"""Utilities package initialization."""
from .config import (
    CurationSettings,
    GlobalSettings,
    SearchSettings,
    ServiceConfiguration,
    VendorSettings,
    ensure_runtime_configuration,
    get_service_configuration,
    get_settings,
    load_runtime_secrets,
    load_yaml_config,
)
from .logging import log_vendor_call, setup_logger

__all__ = [
    "CurationSettings",
    "GlobalSettings",
    "SearchSettings",
    "ServiceConfiguration",
    "VendorSettings",
    "ensure_runtime_configuration",
    "get_settings",
    "get_service_configuration",
    "load_runtime_secrets",
    "load_yaml_config",
    "log_vendor_call",
    "setup_logger",
]
