from typing import List, Optional
from services.llm import LLMProvider
import json
import logging

logger = logging.getLogger(__name__)


class EmbeddingsService:
    """Service for generating vector embeddings through the configured provider"""

    def __init__(self, llm: LLMProvider):
        self.llm = llm

    def generate_embedding(self, text: str) -> Optional[List[float]]:
        """Generate embedding for a single text

        Args:
            text: The text to embed

        Returns:
            Vector, or None when the provider fails (embeddings are best effort)
        """
        try:
            return self.llm.embed(text)
        except Exception as e:
            logger.error(f"Embedding generation failed: {e}")
            return None

    def generate_serialized_embedding(self, text: str) -> Optional[str]:
        """Generate embedding serialized as JSON for the entity.embedding column"""
        vector = self.generate_embedding(text)
        return json.dumps(vector) if vector is not None else None

    def get_model_info(self) -> dict:
        """Get information about the embedding model being used"""
        return self.llm.get_model_info()
