"""Store transport (Node-RED Admin API)."""

from .store import FlowsSnapshot, FlowStoreClient, FlowStoreError, StoreConfig

__all__ = ["FlowStoreClient", "FlowStoreError", "FlowsSnapshot", "StoreConfig"]
