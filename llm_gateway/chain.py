from __future__ import annotations  # Ordered text-generation fallback across providers

import logging
from typing import List, Optional, Sequence

from .llm_gateway import sanitize_output
from .providers import TextGenerator

logger = logging.getLogger(__name__)


class TextGenerationChain:
    """Try each generator in order and return the first non-empty text.

    A generator that returns nothing or raises is skipped. When every
    generator comes up empty the chain returns None and callers use their
    deterministic fallback.
    """

    def __init__(self, generators: Sequence[TextGenerator] = ()) -> None:
        self._generators: List[TextGenerator] = list(generators)

    @property
    def available(self) -> bool:
        return any(getattr(generator, "configured", True) for generator in self._generators)

    async def generate(
        self,
        instruction: str,
        prompt: str,
        *,
        temperature: float = 0.5,
        max_tokens: int = 300,
    ) -> Optional[str]:
        for generator in self._generators:
            if not getattr(generator, "configured", True):
                continue
            try:
                text = await generator.generate_text(instruction, prompt, temperature=temperature, max_tokens=max_tokens)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Text generator %s failed: %s", getattr(generator, "name", "?"), exc)
                continue
            cleaned = sanitize_output(text)
            if cleaned:
                return cleaned
        return None


__all__ = ["TextGenerationChain"]
