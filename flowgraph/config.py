from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_HISTORY_FALLBACK_LIMIT,
    DEFAULT_HISTORY_KEY,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_INPUT_PER_1K,
    DEFAULT_OUTPUT_PER_1K,
    DEFAULT_PRICING_MODEL,
)


class HistoryConfig(BaseModel):
    """Configuration for the persisted execution history."""

    url: Optional[str] = None
    limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1)
    fallback_limit: int = Field(default=DEFAULT_HISTORY_FALLBACK_LIMIT, ge=0)
    key: str = DEFAULT_HISTORY_KEY


class PricingConfig(BaseModel):
    """Token pricing used by the cost estimator."""

    input_per_1k: float = DEFAULT_INPUT_PER_1K
    output_per_1k: float = DEFAULT_OUTPUT_PER_1K
    model: str = DEFAULT_PRICING_MODEL


class FlowgraphConfig(BaseModel):
    """Top-level configuration model."""

    history: HistoryConfig = Field(default_factory=HistoryConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    flows_path: Optional[str] = None


def load_config(path: Optional[str] = None) -> FlowgraphConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWGRAPH_CONFIG env
            variable or 'flowgraph.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWGRAPH_CONFIG", DEFAULT_CONFIG_FILE)
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowgraphConfig(**data)
    else:
        config = FlowgraphConfig()

    env_history_url = os.getenv("FLOWGRAPH_HISTORY_URL")
    if env_history_url:
        config.history.url = env_history_url
    return config
