"""Pipeline services: each builds a prompt, invokes the router and interprets the result."""

from .chat import ChatService
from .classifier import Classifier
from .generator import Generator
from .research import ResearchService
from .summarizer import Summarizer

__all__ = ["ChatService", "Classifier", "Generator", "ResearchService", "Summarizer"]
