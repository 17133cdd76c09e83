"""Provider registry.

The one piece of shared mutable state. Built once at startup (or per test)
and passed explicitly to the generator and fallback chain:

  registry = build_registry_from_env()
  generator = StructuredOutputGenerator(registry)

Names are unique; the first registration becomes the default unless one was
set explicitly. All access is guarded by a lock so concurrent lookups during
late registration stay consistent.
"""

import threading
from dataclasses import dataclass
from typing import Mapping, Optional

from conflux import config as env_config
from conflux.constants import SUPPORTED_PROVIDERS
from conflux.llm.backends import ModelBackend, backend_for
from conflux.errors import ConfigurationError, ProviderNotFoundError
from conflux.llm.types import ProviderConfig
from conflux.utils.logging import log, get_logger

MODULE = "llm.registry"
logger = get_logger()


@dataclass(frozen=True)
class ResolvedProvider:
    name: str
    config: ProviderConfig
    backend: ModelBackend


class ProviderRegistry:
    def __init__(self):
        self._lock = threading.RLock()
        self._providers: dict[str, ResolvedProvider] = {}
        self._default: Optional[str] = None

    def register(
        self,
        name: str,
        config: ProviderConfig,
        backend: Optional[ModelBackend] = None,
    ) -> ResolvedProvider:
        """Register a named provider.

        `backend` overrides the one derived from `config.type`; tests use it
        to script responses.

        Raises:
            ConfigurationError: unsupported type, duplicate name, or a
                backend that cannot be built from `config`.
        """
        if config.type not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported provider type '{config.type}' "
                f"(supported: {', '.join(SUPPORTED_PROVIDERS)})"
            )
        with self._lock:
            if name in self._providers:
                raise ConfigurationError(f"Provider '{name}' is already registered")
            provider = ResolvedProvider(
                name=name,
                config=config,
                backend=backend if backend is not None else backend_for(config),
            )
            self._providers[name] = provider
            if self._default is None:
                self._default = name

        log.info(logger, MODULE, "provider_registered", "Provider registered",
                 provider=name, default=self._default == name, **config.redacted())
        return provider

    def set_default(self, name: str) -> None:
        with self._lock:
            if name not in self._providers:
                raise ProviderNotFoundError(f"Provider '{name}' is not registered", name=name)
            self._default = name

    @property
    def default_name(self) -> Optional[str]:
        return self._default

    def resolve(self, name: Optional[str] = None) -> ResolvedProvider:
        """Return the named provider, or the default when `name` is None.

        Raises:
            ProviderNotFoundError: the name is unknown, or nothing is registered.
        """
        with self._lock:
            if name is not None:
                provider = self._providers.get(name)
                if provider is None:
                    raise ProviderNotFoundError(f"Provider '{name}' is not registered", name=name)
                return provider
            if self._default is None:
                raise ProviderNotFoundError("No LLM providers are registered")
            return self._providers[self._default]

    def list_providers(self) -> list[str]:
        """Registered names in insertion order."""
        with self._lock:
            return list(self._providers)

    def get_config(self, name: str) -> ProviderConfig:
        return self.resolve(name).config

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)


def build_registry_from_env(environ: Optional[Mapping[str, str]] = None) -> ProviderRegistry:
    """Register every provider whose credentials are present in the environment.

    Bad entries are logged and skipped so one misconfigured provider does not
    take the others down. An empty registry is returned as-is; the first
    generation against it raises ProviderNotFoundError.
    """
    registry = ProviderRegistry()

    for settings in env_config.provider_settings(environ):
        name = settings["type"]
        try:
            registry.register(name, ProviderConfig(
                type=settings["type"],
                api_key=settings["api_key"],
                base_url=settings["base_url"],
                model=settings["model"],
            ))
        except ConfigurationError as e:
            log.warning(logger, MODULE, "provider_skipped",
                        "Provider configuration rejected",
                        provider=name, error=str(e))

    if env_config.mock_enabled(environ):
        registry.register("mock", ProviderConfig(type="mock"))

    preferred = env_config.default_provider(environ)
    if preferred:
        try:
            registry.set_default(preferred)
        except ProviderNotFoundError as e:
            log.warning(logger, MODULE, "default_skipped",
                        "Configured default provider is not registered",
                        provider=preferred, error=str(e))

    log.info(logger, MODULE, "registry_ready", "Provider registry built",
             providers=registry.list_providers(), default=registry.default_name)
    return registry
