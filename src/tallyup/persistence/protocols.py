"""Re-export persistence protocols from core for convenience."""

from __future__ import annotations

from tallyup.core.protocols import (
    ICacheBackend,
    IFileStore,
    IMerchantConfigStore,
    IPipelineStatusStore,
)

__all__ = ["ICacheBackend", "IFileStore", "IMerchantConfigStore", "IPipelineStatusStore"]
