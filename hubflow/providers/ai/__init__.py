"""
Generation Providers Package

Providers are auto-registered when imported via the @register decorator.
"""

from .base import (
    Attachment,
    GenerationProviderBase,
    GenerationRequest,
    GenerationResult,
    ToolCall,
    ToolDeclaration,
)
from .registry import GenerationProviderRegistry, register

# Import providers to trigger registration
from .gemini import GeminiProvider
from .openai import OpenAIProvider

__all__ = [
    'Attachment',
    'GenerationProviderBase',
    'GenerationRequest',
    'GenerationResult',
    'ToolCall',
    'ToolDeclaration',
    'GenerationProviderRegistry',
    'register',
    'GeminiProvider',
    'OpenAIProvider',
]
