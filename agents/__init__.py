"""PydanticAI agents for the Trendwire digest relay.

SummarizerAgent:
    Condenses the markdown feed into a ranked top-N digest in the
    configured language via an OpenAI-compatible service (OpenRouter).

Example:
    >>> from agents import SummarizerAgent
    >>> summarizer = SummarizerAgent(config)
    >>> result = await summarizer.summarize(snapshot.text)
"""

from agents.summarizer import SummarizerAgent, build_instructions

__all__ = [
    "SummarizerAgent",
    "build_instructions",
]
