"""Strands model factory for the generation backend."""

import os

from strands.models.litellm import LiteLLMModel
from strands.models.ollama import OllamaModel

from slacksassin.config.models import GenerationConfig
from slacksassin.infrastructure.llm.mock_model import MockModel

# Union type for all supported models
Model = LiteLLMModel | OllamaModel | MockModel

OLLAMA_PREFIX = "ollama/"
MOCK_ON = "true"
MOCK_ERROR = "error"


def mock_enabled() -> bool:
    """Return True if MOCK_LLM replaces the configured model."""
    return os.getenv("MOCK_LLM", "").lower() in (MOCK_ON, MOCK_ERROR)


def create_model(config: GenerationConfig) -> Model:
    """Create a model based on configuration and environment.

    Args:
        config: Generation configuration.

    Returns:
        MockModel if MOCK_LLM is "true" or "error", OllamaModel if model_id
        starts with "ollama/", otherwise LiteLLMModel.
    """
    mock_llm = os.getenv("MOCK_LLM", "").lower()

    if mock_llm == MOCK_ON:
        return MockModel()

    if mock_llm == MOCK_ERROR:
        return MockModel(raise_error=True)

    if config.model_id.startswith(OLLAMA_PREFIX):
        return _create_ollama_model(config)

    client_args = dict(config.client_args)
    if config.base_url and "api_base" not in client_args:
        client_args["api_base"] = config.base_url
    return LiteLLMModel(
        model_id=config.model_id,
        params=config.params,
        client_args=client_args,
    )


def _create_ollama_model(config: GenerationConfig) -> OllamaModel:
    """Create an OllamaModel, using base_url as the Ollama host.

    ``client_args.api_base`` takes precedence over ``base_url``.
    """
    model_id = config.model_id.removeprefix(OLLAMA_PREFIX)
    host = config.client_args.get("api_base", config.base_url)
    return OllamaModel(host=host, model_id=model_id, **config.params)
