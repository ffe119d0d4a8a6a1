from .gateway import GenerationGateway, LLMGenerationGateway
from .llm import GeminiLLMService, LLMService, create_llm_service

__all__ = [
    "GeminiLLMService",
    "GenerationGateway",
    "LLMGenerationGateway",
    "LLMService",
    "create_llm_service",
]
