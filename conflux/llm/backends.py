"""Model backends.

A backend is the only network-facing piece of the system:

    await backend.ainvoke(call: ModelCall) -> raw dict (unvalidated)

  ChatModelBackend → LangChain chat models (ChatOpenAI / ChatAnthropic /
                     ChatGoogleGenerativeAI)
  MockBackend      → declarative example for the requested schema, no I/O

`call.mode` is interpreted here and nowhere else:

  "tool-call" → function-calling structured output
  "json"      → provider JSON mode where the backend has one, then extraction
  "auto"      → plain prompt, then JSON extraction from the text

In "json" and "auto" modes the output schema reaches the model as a
requirements block appended to the system prompt, on every call.
"""

import copy
from typing import Any, Protocol

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from conflux.constants import DEFAULT_MODELS
from conflux.errors import ConfigurationError
from conflux.llm.parser import extract_json
from conflux.llm.types import ModelCall, ProviderConfig
from conflux.schemas.examples import example_for, schema_requirements
from conflux.utils.logging import log, get_logger

MODULE = "llm.backends"
logger = get_logger()

JSON_INSTRUCTION = (
    "\n\nRespond with a single JSON object only. "
    "No markdown fences, no commentary before or after it."
)


class ModelBackend(Protocol):
    async def ainvoke(self, call: ModelCall) -> Any: ...


def system_message(call: ModelCall) -> str:
    """System prompt plus the output schema, for modes without native structured output.

    A repair prompt already restates the schema; it is not repeated.
    """
    requirements = schema_requirements(call.schema)
    system = call.system
    if requirements not in system:
        system = f"{system}\n\n{requirements}"
    return system + JSON_INSTRUCTION


def _content_text(content: Any) -> str:
    """AIMessage content is a string or a list of content blocks (Anthropic)."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class ChatModelBackend:
    """LangChain-backed provider.

    A fresh client is built for every call so per-call temperature and
    token limits never leak between concurrent steps.
    """

    def __init__(self, config: ProviderConfig):
        if config.type in ("openai", "anthropic", "google") and not config.api_key:
            raise ConfigurationError(f"{config.type} provider requires an API key")
        if config.type == "openai-compatible" and not config.base_url:
            raise ConfigurationError("openai-compatible provider requires a base URL")
        self.config = config
        self.model = config.model or DEFAULT_MODELS[config.type]

    def build_client(self, call: ModelCall) -> BaseChatModel:
        params = {
            **self.config.default_params,
            "temperature": call.temperature,
            "max_tokens": call.max_tokens,
        }
        if self.config.type == "anthropic":
            return ChatAnthropic(
                model=self.model,
                api_key=self.config.api_key,
                **params,
            )
        if self.config.type == "google":
            return ChatGoogleGenerativeAI(
                model=self.model,
                google_api_key=self.config.api_key,
                **params,
            )
        kwargs: dict[str, Any] = {
            "model": self.model,
            # Local openai-compatible servers usually ignore the key
            "api_key": self.config.api_key or "not-needed",
            **params,
        }
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url
        return ChatOpenAI(**kwargs)

    async def ainvoke(self, call: ModelCall) -> Any:
        client = self.build_client(call)
        log.debug(logger, MODULE, "call_start", "Calling provider",
                  provider_type=self.config.type, model=self.model, **call.describe())

        if call.mode == "tool-call":
            json_schema = call.schema.model_json_schema()
            json_schema.setdefault("title", call.name)
            if call.schema_description:
                json_schema.setdefault("description", call.schema_description)
            structured = client.with_structured_output(json_schema, method="function_calling")
            return await structured.ainvoke([
                SystemMessage(content=call.system),
                HumanMessage(content=call.prompt),
            ])

        if call.mode == "json" and self.config.type in ("openai", "openai-compatible"):
            client = client.bind(response_format={"type": "json_object"})

        response = await client.ainvoke([
            SystemMessage(content=system_message(call)),
            HumanMessage(content=call.prompt),
        ])
        raw = _content_text(response.content).strip()
        log.debug(logger, MODULE, "call_done", "Provider responded",
                  provider_type=self.config.type, raw_length=len(raw))
        return extract_json(raw)


class MockBackend:
    """Offline backend returning the registered example for each schema."""

    def __init__(self, config: ProviderConfig | None = None):
        self.config = config or ProviderConfig(type="mock")

    async def ainvoke(self, call: ModelCall) -> Any:
        example = example_for(call.schema)
        if example is None:
            raise ValueError(f"malformed response: mock has no example for {call.name}")
        return copy.deepcopy(example)


def backend_for(config: ProviderConfig) -> ModelBackend:
    if config.type == "mock":
        return MockBackend(config)
    return ChatModelBackend(config)
