"""
AI engine service: chat completions for resume structuring and text embeddings
"""
from typing import List, Optional
import openai
import structlog

from app.core.config import settings
from app.core.exceptions import AIEngineError

logger = structlog.get_logger()

# Lazy import for sentence_transformers (to avoid blocking celery workers)
SentenceTransformer = None
embedding_model = None


def _lazy_import_sentence_transformer():
    """Lazy import sentence_transformers to avoid blocking startup"""
    global SentenceTransformer, embedding_model
    if SentenceTransformer is None:
        try:
            from sentence_transformers import SentenceTransformer as ST
        except ImportError:
            raise AIEngineError(
                "Local embedding provider requires the sentence-transformers package"
            )
        SentenceTransformer = ST
        embedding_model = SentenceTransformer(settings.HUGGINGFACE_EMBEDDING_MODEL)
        logger.info("sentence_transformer_initialized", model=settings.HUGGINGFACE_EMBEDDING_MODEL)
    return SentenceTransformer, embedding_model


class AIEngine:
    """
    Thin wrapper over the LLM and embedding providers.

    Every provider failure surfaces as AIEngineError, which the ingestion
    consumer treats as transient.
    """

    def __init__(self, client: Optional[openai.OpenAI] = None):
        self._openai_client = client
        self.provider = settings.EMBEDDING_PROVIDER
        logger.info("ai_engine_initialized", provider=self.provider, model=settings.OPENAI_MODEL)

    @property
    def openai_client(self) -> openai.OpenAI:
        if self._openai_client is None:
            if not settings.OPENAI_API_KEY:
                raise AIEngineError("OPENAI_API_KEY is not configured")
            self._openai_client = openai.OpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
            )
            logger.info("openai_client_initialized")
        return self._openai_client

    def chat_completion(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Single-turn completion, returns the message content"""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self.openai_client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=messages,
                temperature=settings.AI_TEMPERATURE,
                max_tokens=settings.AI_MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            logger.error("chat_completion_failed", model=settings.OPENAI_MODEL, error=str(e))
            raise AIEngineError("LLM request failed", details={"error": str(e)})

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIEngineError("LLM returned an empty response")
        return content

    def generate_embedding(self, text: str) -> List[float]:
        """Embed text with the configured provider"""
        if not text or not text.strip():
            raise AIEngineError("Cannot embed empty text")

        if self.provider == "huggingface":
            _, model = _lazy_import_sentence_transformer()
            try:
                embedding = model.encode(text).tolist()
            except Exception as e:
                logger.error("embedding_generation_failed", provider=self.provider, error=str(e))
                raise AIEngineError("Embedding generation failed", details={"error": str(e)})
        else:
            try:
                response = self.openai_client.embeddings.create(
                    model=settings.EMBEDDING_MODEL,
                    input=text,
                    dimensions=settings.EMBEDDING_DIMENSION,
                )
            except openai.OpenAIError as e:
                logger.error("embedding_generation_failed", provider=self.provider, error=str(e))
                raise AIEngineError("Embedding generation failed", details={"error": str(e)})
            embedding = response.data[0].embedding

        if len(embedding) != settings.EMBEDDING_DIMENSION:
            raise AIEngineError(
                "Embedding dimension mismatch",
                details={"expected": settings.EMBEDDING_DIMENSION, "actual": len(embedding)},
            )
        return embedding


# Global instance
ai_engine = AIEngine()
