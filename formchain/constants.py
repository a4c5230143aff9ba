"""Shared constants for formchain."""

PREVIOUS_KEY = "__previous"
CHAIN_KEY = "__chain"
RESERVED_KEYS = frozenset({PREVIOUS_KEY, CHAIN_KEY})

IDLE_STEP = "idle"
INITIAL_STEP = "initial"
COMPLETE_STEP = "complete"
ERROR_STEP = "error"

DEFAULT_ACTION = "default-action"

CONFIG_ENV = "FORMCHAIN_CONFIG"
MERGE_POLICY_ENV = "FORMCHAIN_MERGE_POLICY"
TRANSPORT_ENV = "FORMCHAIN_TRANSPORT"
BASE_URL_ENV = "FORMCHAIN_BASE_URL"
