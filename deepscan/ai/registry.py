"""
Adapter registry — maps a Vendor onto its adapter class.

Adapters are built per call and bound to the caller's credential; no
adapter instance outlives the request that created it.
"""

from typing import Optional

import httpx

from deepscan.ai.base_adapter import DetectionAdapter
from deepscan.ai.deepai_adapter import DeepAIAdapter
from deepscan.ai.hive_adapter import HiveAdapter
from deepscan.core.config import settings
from deepscan.models.detection import Vendor

ADAPTERS: dict[Vendor, type[DetectionAdapter]] = {
    Vendor.HIVE: HiveAdapter,
    Vendor.DEEPAI: DeepAIAdapter,
}


def build_adapter(
    credential: Optional[str],
    vendor: Optional[Vendor] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> DetectionAdapter:
    """
    Construct the adapter for `vendor` (default: settings.detection_vendor).

    Raises:
        CredentialRequired: if the credential is missing or blank.
    """
    adapter_cls = ADAPTERS[vendor or settings.detection_vendor]
    return adapter_cls(credential, transport=transport)


def credential_check_vendor() -> Vendor:
    """
    Vendor used for credential checks when the caller names none.

    The configured vendor when it has an account endpoint, otherwise the
    first registered vendor that does.
    """
    if ADAPTERS[settings.detection_vendor].supports_credential_check:
        return settings.detection_vendor
    for vendor, adapter_cls in ADAPTERS.items():
        if adapter_cls.supports_credential_check:
            return vendor
    return settings.detection_vendor
