"""Shared constants and defaults."""

APP_NAME = "conflux"
APP_VERSION = "0.3.0"

# =============================================================================
# GENERATION DEFAULTS
# =============================================================================

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_TOKENS = 2000
DEFAULT_MODE = "auto"
# Per-call deadline. Expiry is reported as a "timeout" transport failure.
DEFAULT_CALL_TIMEOUT = 120.0

# Temperature handling on rate-limit/timeout retries
TEMPERATURE_DECAY = 0.8
TEMPERATURE_FLOOR = 0.1

# Fallback providers get a single conservative attempt
FALLBACK_TEMPERATURE = 0.1
FALLBACK_MAX_RETRIES = 1

# One model call to fix a step input that failed validation
INPUT_REPAIR_TEMPERATURE = 0.1
INPUT_REPAIR_MAX_RETRIES = 2

# Substrings (lower-cased) that mark a transport failure as transient
TRANSIENT_ERROR_MARKERS = ("timeout", "rate limit")

# =============================================================================
# PROVIDERS
# =============================================================================

SUPPORTED_PROVIDERS = (
    "openai",
    "anthropic",
    "google",
    "openai-compatible",
    "mock",
)

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
    "google": "gemini-2.0-flash",
    "openai-compatible": "gpt-3.5-turbo",
    "mock": "mock-model",
}

# =============================================================================
# ORCHESTRATION
# =============================================================================

FAILED_STEP_PENALTY = 0.1
MAX_NEXT_STEPS = 5
