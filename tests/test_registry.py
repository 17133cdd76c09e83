"""Tests for the provider registry and environment configuration."""

import pytest

from conflux.llm.backends import ChatModelBackend, MockBackend
from conflux.errors import ConfigurationError, ProviderNotFoundError
from conflux.llm.registry import ProviderRegistry, build_registry_from_env
from conflux.llm.types import ProviderConfig


def test_first_registered_becomes_default():
    registry = ProviderRegistry()
    registry.register("a", ProviderConfig(type="mock"))
    registry.register("b", ProviderConfig(type="mock"))
    assert registry.default_name == "a"
    assert registry.resolve().name == "a"


def test_list_preserves_insertion_order():
    registry = ProviderRegistry()
    for name in ("zeta", "alpha", "mid"):
        registry.register(name, ProviderConfig(type="mock"))
    assert registry.list_providers() == ["zeta", "alpha", "mid"]
    assert len(registry) == 3
    assert "alpha" in registry


def test_unsupported_type_rejected():
    registry = ProviderRegistry()
    with pytest.raises(ConfigurationError, match="Unsupported provider type"):
        registry.register("x", ProviderConfig(type="carrier-pigeon"))
    assert registry.list_providers() == []
    assert registry.default_name is None


def test_duplicate_name_rejected():
    registry = ProviderRegistry()
    registry.register("a", ProviderConfig(type="mock"))
    with pytest.raises(ConfigurationError, match="already registered"):
        registry.register("a", ProviderConfig(type="mock"))


def test_hosted_provider_without_key_rejected():
    registry = ProviderRegistry()
    with pytest.raises(ConfigurationError, match="API key"):
        registry.register("openai", ProviderConfig(type="openai"))


def test_resolve_unknown_name():
    registry = ProviderRegistry()
    registry.register("a", ProviderConfig(type="mock"))
    with pytest.raises(ProviderNotFoundError):
        registry.resolve("missing")


def test_resolve_empty_registry():
    with pytest.raises(ProviderNotFoundError):
        ProviderRegistry().resolve()


def test_provider_not_found_is_configuration_error():
    assert issubclass(ProviderNotFoundError, ConfigurationError)


def test_set_default_overrides_first():
    registry = ProviderRegistry()
    registry.register("a", ProviderConfig(type="mock"))
    registry.register("b", ProviderConfig(type="mock"))
    registry.set_default("b")
    assert registry.resolve().name == "b"
    with pytest.raises(ProviderNotFoundError):
        registry.set_default("missing")


def test_redacted_config_hides_key():
    config = ProviderConfig(type="openai", api_key="sk-secret", model="gpt-4o-mini")
    assert config.redacted()["api_key"] == "***"
    assert "sk-secret" not in str(config.redacted())


# --- environment ---


def test_env_registers_present_providers():
    registry = build_registry_from_env({
        "OPENAI_API_KEY": "sk-test",
        "ANTHROPIC_API_KEY": "sk-ant-test",
        "ANTHROPIC_MODEL": "claude-test",
    })
    assert registry.list_providers() == ["openai", "anthropic"]
    assert registry.default_name == "openai"
    assert registry.get_config("anthropic").model == "claude-test"
    assert isinstance(registry.resolve("openai").backend, ChatModelBackend)


def test_env_default_provider_selector():
    registry = build_registry_from_env({
        "OPENAI_API_KEY": "sk-test",
        "ANTHROPIC_API_KEY": "sk-ant-test",
        "DEFAULT_LLM_PROVIDER": "anthropic",
    })
    assert registry.default_name == "anthropic"


def test_env_unknown_default_is_ignored():
    registry = build_registry_from_env({
        "OPENAI_API_KEY": "sk-test",
        "DEFAULT_LLM_PROVIDER": "nope",
    })
    assert registry.default_name == "openai"


def test_env_compatible_endpoint_keyed_on_base_url():
    registry = build_registry_from_env({
        "OPENAI_COMPATIBLE_BASE_URL": "http://localhost:8000/v1",
    })
    assert registry.list_providers() == ["openai-compatible"]
    assert registry.get_config("openai-compatible").base_url == "http://localhost:8000/v1"


def test_env_mock_only_when_enabled():
    assert build_registry_from_env({}).list_providers() == []
    registry = build_registry_from_env({"ENABLE_MOCK_PROVIDER": "true"})
    assert registry.list_providers() == ["mock"]
    assert isinstance(registry.resolve().backend, MockBackend)


def test_env_registers_google():
    registry = build_registry_from_env({
        "GOOGLE_GENERATIVE_AI_API_KEY": "g-test",
        "GOOGLE_MODEL": "gemini-test",
    })
    assert registry.list_providers() == ["google"]
    assert registry.default_name == "google"
    assert registry.get_config("google").model == "gemini-test"
    assert isinstance(registry.resolve().backend, ChatModelBackend)


def test_env_google_registers_after_anthropic():
    registry = build_registry_from_env({
        "GOOGLE_GENERATIVE_AI_API_KEY": "g-test",
        "ANTHROPIC_API_KEY": "sk-ant-test",
    })
    assert registry.list_providers() == ["anthropic", "google"]
    assert registry.default_name == "anthropic"


def test_google_without_key_rejected():
    registry = ProviderRegistry()
    with pytest.raises(ConfigurationError, match="API key"):
        registry.register("google", ProviderConfig(type="google"))
