"""Tests for model backends (no network)."""

import json

import pytest
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from conflux.agents.runner import MethodAgent
from conflux.llm.backends import JSON_INSTRUCTION, ChatModelBackend, MockBackend, backend_for
from conflux.errors import ConfigurationError, ErrorKind
from conflux.llm.generator import StructuredOutputGenerator
from conflux.llm.outcome import Failure
from conflux.llm.parser import JSONExtractionError
from conflux.llm.recovery import augment_system_prompt
from conflux.llm.registry import ProviderRegistry
from conflux.llm.types import GenerationOptions, GenerationRequest, ModelCall, ProviderConfig
from conflux.schemas.api import ThinkRequest
from conflux.schemas.examples import example_for
from conflux.schemas.methods import CriticalOutput, DeductiveOutput


def _call(mode="auto", schema=CriticalOutput):
    return ModelCall(schema=schema, system="sys", prompt="user", temperature=0.3, mode=mode)


class FakeChatModel:
    def __init__(self, content):
        self.content = content
        self.bound = None
        self.structured = None
        self.messages = None

    def bind(self, **kwargs):
        self.bound = kwargs
        return self

    def with_structured_output(self, schema, method):
        self.structured = (schema, method)
        return self

    async def ainvoke(self, messages):
        self.messages = messages
        if self.structured:
            return example_for(CriticalOutput)
        return AIMessage(content=self.content)


def _backend(monkeypatch, content, provider_type="openai"):
    backend = ChatModelBackend(ProviderConfig(type=provider_type, api_key="test-key"))
    fake = FakeChatModel(content)
    monkeypatch.setattr(backend, "build_client", lambda call: fake)
    return backend, fake


@pytest.mark.asyncio
async def test_mock_backend_returns_examples():
    data = await MockBackend().ainvoke(_call())
    assert data == example_for(CriticalOutput)
    data["recommendations"].append("mutated")
    assert "mutated" not in example_for(CriticalOutput)["recommendations"]


@pytest.mark.asyncio
async def test_mock_backend_unknown_schema():
    with pytest.raises(ValueError, match="malformed response"):
        await MockBackend().ainvoke(_call(schema=ThinkRequest))


@pytest.mark.asyncio
async def test_auto_mode_extracts_json(monkeypatch):
    backend, fake = _backend(monkeypatch, 'Result:\n```json\n{"status": "OK"}\n```')
    assert await backend.ainvoke(_call()) == {"status": "OK"}
    system = fake.messages[0]
    assert isinstance(system, SystemMessage)
    assert system.content.startswith("sys\n\nRequired schema: CriticalOutput")
    assert system.content.endswith(JSON_INSTRUCTION)
    assert fake.bound is None


@pytest.mark.asyncio
async def test_json_mode_binds_response_format(monkeypatch):
    backend, fake = _backend(monkeypatch, '{"status": "OK"}')
    await backend.ainvoke(_call(mode="json"))
    assert fake.bound == {"response_format": {"type": "json_object"}}


@pytest.mark.asyncio
async def test_json_mode_not_bound_for_anthropic(monkeypatch):
    backend, fake = _backend(monkeypatch, [{"type": "text", "text": '{"status": "OK"}'}], "anthropic")
    assert await backend.ainvoke(_call(mode="json")) == {"status": "OK"}
    assert fake.bound is None


@pytest.mark.asyncio
async def test_json_mode_not_bound_for_google(monkeypatch):
    backend, fake = _backend(monkeypatch, [{"type": "text", "text": '{"status": "OK"}'}], "google")
    assert await backend.ainvoke(_call(mode="json")) == {"status": "OK"}
    assert fake.bound is None


@pytest.mark.asyncio
async def test_tool_call_mode_uses_structured_output(monkeypatch):
    backend, fake = _backend(monkeypatch, "")
    data = await backend.ainvoke(_call(mode="tool-call"))
    schema, method = fake.structured
    assert method == "function_calling"
    assert schema["title"] == "CriticalOutput"
    assert data == example_for(CriticalOutput)


@pytest.mark.asyncio
async def test_text_without_json_raises(monkeypatch):
    backend, _ = _backend(monkeypatch, "I'd rather not.")
    with pytest.raises(JSONExtractionError):
        await backend.ainvoke(_call())


def test_clients_per_provider_type():
    call = _call()
    openai = ChatModelBackend(ProviderConfig(type="openai", api_key="k")).build_client(call)
    anthropic = ChatModelBackend(ProviderConfig(type="anthropic", api_key="k")).build_client(call)
    google = ChatModelBackend(ProviderConfig(type="google", api_key="k")).build_client(call)
    local = ChatModelBackend(ProviderConfig(
        type="openai-compatible", base_url="http://localhost:8000/v1", model="qwen",
    )).build_client(call)
    assert isinstance(openai, ChatOpenAI)
    assert isinstance(anthropic, ChatAnthropic)
    assert isinstance(google, ChatGoogleGenerativeAI)
    assert google.model.endswith("gemini-2.0-flash")
    assert isinstance(local, ChatOpenAI)
    assert local.model_name == "qwen"
    assert openai.temperature == 0.3


def test_backend_requirements():
    with pytest.raises(ConfigurationError):
        ChatModelBackend(ProviderConfig(type="anthropic"))
    with pytest.raises(ConfigurationError):
        ChatModelBackend(ProviderConfig(type="google"))
    with pytest.raises(ConfigurationError):
        ChatModelBackend(ProviderConfig(type="openai-compatible"))
    assert isinstance(backend_for(ProviderConfig(type="mock")), MockBackend)


# --- schema in the prompt ---


class SchemaAwareChatModel:
    """Answers with the example payload only when the system prompt names every required field."""

    def __init__(self, schema):
        self.schema = schema
        self.systems: list[str] = []

    def bind(self, **kwargs):
        return self

    async def ainvoke(self, messages):
        system = messages[0].content
        self.systems.append(system)
        required = self.schema.model_json_schema()["required"]
        if all(name in system for name in required):
            return AIMessage(content=json.dumps(example_for(self.schema)))
        return AIMessage(content='{"answer": "looks fine"}')


def _schema_aware(monkeypatch, schema, provider_type="openai"):
    backend = ChatModelBackend(ProviderConfig(type=provider_type, api_key="test-key"))
    fake = SchemaAwareChatModel(schema)
    monkeypatch.setattr(backend, "build_client", lambda call: fake)
    return backend, fake


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", ["auto", "json"])
async def test_schema_block_sent_on_first_call(monkeypatch, mode):
    backend, fake = _schema_aware(monkeypatch, DeductiveOutput)
    data = await backend.ainvoke(_call(mode=mode, schema=DeductiveOutput))

    assert data == example_for(DeductiveOutput)
    assert "validity_check" in fake.systems[0]


@pytest.mark.asyncio
async def test_repair_prompt_schema_block_not_repeated(monkeypatch):
    backend, fake = _schema_aware(monkeypatch, DeductiveOutput)
    failure = Failure(kind=ErrorKind.SCHEMA_VIOLATION, message="conclusion: Field required")
    repaired = augment_system_prompt("sys", DeductiveOutput, failure)

    await backend.ainvoke(ModelCall(schema=DeductiveOutput, system=repaired, prompt="user", temperature=0.3))

    assert fake.systems[0].count("Required schema: DeductiveOutput") == 1


@pytest.mark.asyncio
async def test_step_succeeds_on_first_attempt(monkeypatch, sleep):
    backend, fake = _schema_aware(monkeypatch, DeductiveOutput)
    registry = ProviderRegistry()
    registry.register("openai", backend.config, backend=backend)
    agent = MethodAgent(StructuredOutputGenerator(registry, sleep=sleep))

    result = await agent.think("deductive", example_for("DeductiveInput"))

    assert result.completed
    assert result.metadata["attempts"] == 1
    assert len(fake.systems) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_fallback_attempt_carries_schema(monkeypatch, sleep):
    primary, primary_fake = _backend(monkeypatch, '{"answer": "nope"}')
    fallback, fallback_fake = _schema_aware(monkeypatch, DeductiveOutput, "anthropic")
    registry = ProviderRegistry()
    registry.register("openai", primary.config, backend=primary)
    registry.register("anthropic", fallback.config, backend=fallback)
    generator = StructuredOutputGenerator(registry, sleep=sleep)

    outcome = await generator.generate(GenerationRequest(
        schema=DeductiveOutput,
        system_prompt="Reason deductively.",
        user_prompt="All services log. Billing is a service.",
        options=GenerationOptions(max_retries=1, mode="json"),
    ))

    assert outcome.ok
    assert outcome.provider == "anthropic"
    assert "validity_check" in primary_fake.messages[0].content
    assert len(fallback_fake.systems) == 1
    assert "validity_check" in fallback_fake.systems[0]
