"""
Anthropic Claude API client wrapper.

Implements the SyncModelClient protocol from core.sync.synchronizer.
"""

from .client import (
    AnthropicConfig,
    AnthropicSyncClient,
    MockSyncModelClient,
    create_sync_model_client,
)

__all__ = [
    "AnthropicConfig",
    "AnthropicSyncClient",
    "MockSyncModelClient",
    "create_sync_model_client",
]
