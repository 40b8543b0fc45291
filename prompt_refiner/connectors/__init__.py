"""Text-generation connectors."""

from prompt_refiner.connectors.base import BaseGenerator
from prompt_refiner.connectors.openai_connector import OpenAIGenerator

__all__ = ["BaseGenerator", "OpenAIGenerator"]
