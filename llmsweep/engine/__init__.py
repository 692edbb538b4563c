"""Inference engine adapters."""

from llmsweep.engine.base import EngineError, EngineResult, InferenceEngine
from llmsweep.engine.ollama import OllamaEngine

__all__ = ["EngineError", "EngineResult", "InferenceEngine", "OllamaEngine"]
