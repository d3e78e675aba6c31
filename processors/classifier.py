from pydantic import ValidationError
from services.llm import LLMProvider
from prompts.prompt_manager import PromptManager, prompt_manager as default_prompt_manager
from models.classification import ClassificationResult, classification_adapter
from typing import Optional
import json
import logging
import re

logger = logging.getLogger(__name__)

FENCE_OPEN = re.compile(r"^```[a-zA-Z]*[ \t]*\n?")
FENCE_CLOSE = re.compile(r"\n?```\s*$")


class ClassificationError(Exception):
    """Raised when one item cannot be classified (provider failure or unparseable output)"""


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` wrapping some providers put around JSON"""
    content = FENCE_OPEN.sub("", text.strip())
    return FENCE_CLOSE.sub("", content).strip()


class Classifier:
    """Turns one raw text item into a typed classification result.

    A single provider call per item. No retry and no confidence gating here -
    the caller decides what a low score or a CLARIFY answer means.
    """

    def __init__(self, llm: LLMProvider, prompts: Optional[PromptManager] = None):
        self.llm = llm
        self.prompts = prompts or default_prompt_manager

    def classify(self, content: str) -> ClassificationResult:
        if not content or not content.strip():
            raise ClassificationError("Cannot classify empty content")

        prompt = self.prompts.build_classification_prompt(content)

        try:
            raw = self.llm.generate(prompt, json_mode=True)
        except Exception as e:
            raise ClassificationError(f"Provider call failed: {e}") from e

        return self.parse(raw)

    def parse(self, raw: str) -> ClassificationResult:
        """Parse a provider response into a ClassificationResult"""
        content = strip_code_fences(raw or "")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Raw content that failed to parse: {content[:1000]}")
            raise ClassificationError(f"Classifier returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ClassificationError(f"Classifier returned {type(data).__name__}, expected an object")

        if isinstance(data.get("type"), str):
            data["type"] = data["type"].strip().upper()

        try:
            return classification_adapter.validate_python(data)
        except ValidationError as e:
            raise ClassificationError(f"Classifier output does not match schema: {e}") from e
