"""
LLM provider layer.

Every provider exposes the same two primitives the engine needs:

    generate(prompt, json_mode=False) -> str
    embed(text) -> List[float]

Supported providers (AI_PROVIDER): GEMINI, OLLAMA, ANTHROPIC, MOCK.
MOCK never calls out - it returns canned, deterministic output so the whole
engine can run offline.
"""

from typing import List, Optional
import google.generativeai as genai
from anthropic import Anthropic
import hashlib
import json
import logging
import random
import re
import requests

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """Raised when a provider call fails (network, timeout, bad response)"""


class ProviderConfigurationError(ProviderError):
    """Raised at construction when the selected provider is not configured"""


class LLMProvider:
    name = "base"

    def generate(self, prompt: str, json_mode: bool = False) -> str:
        raise NotImplementedError

    def embed(self, text: str) -> List[float]:
        raise NotImplementedError

    def get_model_info(self) -> dict:
        return {"provider": self.name}


class GeminiProvider(LLMProvider):
    """Google Gemini via google-generativeai"""

    name = "GEMINI"

    def __init__(self, api_key: str, model: str, embedding_model: str, timeout: float = 60.0):
        if not api_key:
            raise ProviderConfigurationError("GEMINI_API_KEY is required when AI_PROVIDER=GEMINI")

        genai.configure(api_key=api_key)
        self.model_name = model
        self.embedding_model = embedding_model
        self.timeout = timeout
        self.model = genai.GenerativeModel(model)

        logger.info(f"Initialized Gemini provider: model={model}, embeddings={embedding_model}")

    def generate(self, prompt: str, json_mode: bool = False) -> str:
        generation_config = {"response_mime_type": "application/json"} if json_mode else None
        try:
            response = self.model.generate_content(
                prompt,
                generation_config=generation_config,
                request_options={"timeout": self.timeout},
            )
            return response.text
        except Exception as e:
            raise ProviderError(f"Gemini generation failed: {e}") from e

    def embed(self, text: str) -> List[float]:
        try:
            result = genai.embed_content(
                model=self.embedding_model,
                content=text,
                request_options={"timeout": self.timeout},
            )
            return list(result["embedding"])
        except Exception as e:
            raise ProviderError(f"Gemini embedding failed: {e}") from e

    def get_model_info(self) -> dict:
        return {"provider": self.name, "model": self.model_name, "embedding_model": self.embedding_model}


class OllamaProvider(LLMProvider):
    """Local Ollama server over its HTTP API"""

    name = "OLLAMA"

    def __init__(self, host: str, model: str, timeout: float = 60.0):
        if not host:
            raise ProviderConfigurationError("OLLAMA_HOST is required when AI_PROVIDER=OLLAMA")

        self.host = host.rstrip("/")
        self.model_name = model
        self.timeout = timeout

        logger.info(f"Initialized Ollama provider: host={self.host}, model={model}")

    def _post(self, path: str, payload: dict) -> dict:
        try:
            response = requests.post(f"{self.host}{path}", json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Ollama request to {path} failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Ollama returned non-JSON from {path}: {e}") from e

    def generate(self, prompt: str, json_mode: bool = False) -> str:
        payload = {"model": self.model_name, "prompt": prompt, "stream": False}
        if json_mode:
            payload["format"] = "json"

        data = self._post("/api/generate", payload)
        if "response" not in data:
            raise ProviderError("Ollama generate response missing 'response'")
        return data["response"]

    def embed(self, text: str) -> List[float]:
        data = self._post("/api/embeddings", {"model": self.model_name, "prompt": text})
        embedding = data.get("embedding")
        if not embedding:
            raise ProviderError("Ollama embeddings response missing 'embedding'")
        return embedding

    def get_model_info(self) -> dict:
        return {"provider": self.name, "model": self.model_name, "host": self.host}


class AnthropicProvider(LLMProvider):
    """Claude via the Anthropic SDK (no embeddings endpoint)"""

    name = "ANTHROPIC"
    dimensions = 1536

    def __init__(self, api_key: str, model: str, timeout: float = 60.0):
        if not api_key:
            raise ProviderConfigurationError("ANTHROPIC_API_KEY is required when AI_PROVIDER=ANTHROPIC")

        self.client = Anthropic(api_key=api_key, timeout=timeout)
        self.model_name = model

        logger.info(f"Initialized Anthropic provider: model={model}")

    def generate(self, prompt: str, json_mode: bool = False) -> str:
        try:
            response = self.client.messages.create(
                model=self.model_name,
                max_tokens=4096,
                messages=[{"role": "user", "content": prompt}],
            )
            return response.content[0].text
        except Exception as e:
            raise ProviderError(f"Anthropic generation failed: {e}") from e

    def embed(self, text: str) -> List[float]:
        logger.debug("Anthropic doesn't provide embeddings - returning zero vector")
        return [0.0] * self.dimensions

    def get_model_info(self) -> dict:
        return {"provider": self.name, "model": self.model_name}


class MockProvider(LLMProvider):
    """Deterministic offline provider.

    Classification prompts (json_mode=True) get a canned JSON classification
    derived from keyword rules applied to the text after the last 'Input:'
    marker. Everything else gets a fixed line of text.
    """

    name = "MOCK"
    dimensions = 768

    PROJECT_WORDS = re.compile(r"\b(project|plan|launch|build|design|roadmap|strategy|ship)\b")
    PERSON_WORDS = re.compile(r"\b(met|meet|contact|phone|email|cto|ceo|founder|colleague)\b|@")
    ADMIN_WORDS = re.compile(r"\b(buy|pay|renew|bill|tax|lease|invoice|call|fix|clean|schedule|todo|send)\b")
    IDEA_WORDS = re.compile(r"\b(idea|what if|concept|imagine|could|marketplace)\b")

    DEFAULT_TEXT = "Pick the smallest next step and do it in the next 10 minutes."

    def __init__(self, text_response: Optional[str] = None):
        self.text_response = text_response or self.DEFAULT_TEXT

    def generate(self, prompt: str, json_mode: bool = False) -> str:
        if json_mode:
            content = prompt.rsplit("Input:", 1)[-1].strip()
            return json.dumps(self.classify(content))
        return self.text_response

    def classify(self, content: str) -> dict:
        lower = content.lower()

        if not re.search(r"[a-z0-9]", lower):
            return {
                "type": "CLARIFY",
                "title": "Needs clarification",
                "summary": "Input has no recognizable content",
                "intent": "Unknown",
                "confidence": 0.3,
                "status": "Active",
                "reasoning": "The input contains no words to classify.",
                "clarificationQuestion": "Can you elaborate?",
            }

        confidence = 0.85
        if self.PROJECT_WORDS.search(lower):
            entity_type, confidence = "PROJECT", confidence + 0.1
        elif self.PERSON_WORDS.search(lower):
            entity_type, confidence = "PERSON", confidence + 0.1
        elif self.ADMIN_WORDS.search(lower):
            entity_type, confidence = "ADMIN", confidence + 0.1
        elif self.IDEA_WORDS.search(lower):
            entity_type, confidence = "IDEA", confidence + 0.1
        else:
            # Nothing matched - best guess only
            entity_type, confidence = "IDEA", confidence - 0.1

        # Short or hedged input is ambiguous
        if len(content) < 5:
            confidence -= 0.3
        if "maybe" in lower or "?" in lower:
            confidence -= 0.2
        confidence = round(min(max(confidence, 0.1), 1.0), 2)

        words = content.split()
        summary = " ".join(words[:5]) + "..." if len(words) > 5 else content
        title = content[:40] + ("..." if len(content) > 40 else "")

        return {
            "type": entity_type,
            "title": title,
            "summary": summary,
            "intent": f"Mock{entity_type.title()}",
            "confidence": confidence,
            "status": "Active",
            "reasoning": f"Keyword rules matched {entity_type}.",
            "routingStrategy": f"Filed under {entity_type} for follow-up.",
        }

    def embed(self, text: str) -> List[float]:
        seed = int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:16], 16)
        rng = random.Random(seed)
        return [rng.random() for _ in range(self.dimensions)]

    def get_model_info(self) -> dict:
        return {"provider": self.name, "model": "mock", "dimensions": self.dimensions}


def get_llm_provider(config=None) -> LLMProvider:
    """Build the provider selected by AI_PROVIDER

    Raises:
        ProviderConfigurationError: unknown provider or missing credentials
    """
    if config is None:
        from config import settings as config

    provider = (config.AI_PROVIDER or "MOCK").upper()
    logger.info(f"AI Mode: {provider} (Options: GEMINI, OLLAMA, ANTHROPIC, MOCK)")

    if provider == "GEMINI":
        return GeminiProvider(
            api_key=config.GEMINI_API_KEY,
            model=config.GEMINI_MODEL,
            embedding_model=config.GEMINI_EMBEDDING_MODEL,
            timeout=config.LLM_TIMEOUT_SECONDS,
        )
    if provider == "OLLAMA":
        return OllamaProvider(
            host=config.OLLAMA_HOST,
            model=config.OLLAMA_MODEL,
            timeout=config.LLM_TIMEOUT_SECONDS,
        )
    if provider == "ANTHROPIC":
        return AnthropicProvider(
            api_key=config.ANTHROPIC_API_KEY,
            model=config.ANTHROPIC_MODEL,
            timeout=config.LLM_TIMEOUT_SECONDS,
        )
    if provider == "MOCK":
        return MockProvider()

    raise ProviderConfigurationError(f"Unknown AI_PROVIDER: {provider}")
