"""Environment configuration.

Provider credentials and model names are read once, when the registry is
built at startup, never per call:

  OPENAI_API_KEY / OPENAI_MODEL
  ANTHROPIC_API_KEY / ANTHROPIC_MODEL
  GOOGLE_GENERATIVE_AI_API_KEY / GOOGLE_MODEL
  OPENAI_COMPATIBLE_BASE_URL / OPENAI_COMPATIBLE_API_KEY / OPENAI_COMPATIBLE_MODEL
  DEFAULT_LLM_PROVIDER    name of the provider to use when none is given
  ENABLE_MOCK_PROVIDER    "1"/"true" registers the offline mock provider
  LLM_CALL_TIMEOUT        per-call deadline in seconds
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from conflux.constants import DEFAULT_CALL_TIMEOUT


@dataclass(frozen=True)
class ProviderEnv:
    """Where to find one provider's settings in the environment."""
    type: str
    api_key_var: Optional[str]
    model_var: str
    base_url_var: Optional[str] = None


PROVIDER_ENV = (
    ProviderEnv("openai", "OPENAI_API_KEY", "OPENAI_MODEL"),
    ProviderEnv("anthropic", "ANTHROPIC_API_KEY", "ANTHROPIC_MODEL"),
    ProviderEnv("google", "GOOGLE_GENERATIVE_AI_API_KEY", "GOOGLE_MODEL"),
    ProviderEnv(
        "openai-compatible",
        "OPENAI_COMPATIBLE_API_KEY",
        "OPENAI_COMPATIBLE_MODEL",
        base_url_var="OPENAI_COMPATIBLE_BASE_URL",
    ),
)

DEFAULT_PROVIDER_VAR = "DEFAULT_LLM_PROVIDER"
MOCK_PROVIDER_VAR = "ENABLE_MOCK_PROVIDER"
CALL_TIMEOUT_VAR = "LLM_CALL_TIMEOUT"

_TRUTHY = {"1", "true", "yes", "on"}


def provider_settings(environ: Optional[Mapping[str, str]] = None) -> list[dict]:
    """Raw settings for every provider whose credentials are present.

    An openai-compatible endpoint is keyed on its base URL (local servers
    rarely need a key); the hosted providers are keyed on their API key.
    """
    env = os.environ if environ is None else environ
    found = []
    for spec in PROVIDER_ENV:
        api_key = env.get(spec.api_key_var) if spec.api_key_var else None
        base_url = env.get(spec.base_url_var) if spec.base_url_var else None
        present = base_url if spec.base_url_var else api_key
        if not present:
            continue
        found.append({
            "type": spec.type,
            "api_key": api_key,
            "base_url": base_url,
            "model": env.get(spec.model_var) or None,
        })
    return found


def default_provider(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if environ is None else environ
    return env.get(DEFAULT_PROVIDER_VAR) or None


def mock_enabled(environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(MOCK_PROVIDER_VAR, "").strip().lower() in _TRUTHY


def call_timeout(environ: Optional[Mapping[str, str]] = None) -> float:
    env = os.environ if environ is None else environ
    raw = env.get(CALL_TIMEOUT_VAR)
    if not raw:
        return DEFAULT_CALL_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_CALL_TIMEOUT
