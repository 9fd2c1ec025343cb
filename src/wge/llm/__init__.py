"""Generative-AI service client and schemas."""

from wge.llm.gemini import GeminiClient, Ok, ServiceError

__all__ = ["GeminiClient", "Ok", "ServiceError"]
