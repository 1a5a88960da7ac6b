"""Shared defaults for the flow graph engine."""

DEFAULT_HISTORY_KEY = "flowgraph:execution-history"
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_HISTORY_FALLBACK_LIMIT = 5

DEFAULT_CONFIG_FILE = "flowgraph.yaml"

DEFAULT_PRICING_MODEL = "gemini-2.5-flash"
DEFAULT_INPUT_PER_1K = 0.00015
DEFAULT_OUTPUT_PER_1K = 0.0006
