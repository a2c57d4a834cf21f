"""
Short Code Allocator

Generates random, collision-checked short codes.

Design Decisions:
- Codes come from nanoid over a URL-safe alphabet, so they are not guessable
  from neighbouring codes the way counter-based codes are
- Each candidate is checked against the store before it is returned; the
  unique index in the store remains the final guard against races
- A bounded number of attempts: running out means the code space is close
  to saturation, which is an operational problem and is logged as an error
"""

import logging
from typing import Optional

from nanoid import generate

from shortener.core.exceptions import AllocationExhaustedError
from shortener.core.setting import settings
from shortener.services.link_store import LinkStore

logger = logging.getLogger(__name__)

# Single-segment paths served by fixed routes; a link with one of these codes could never redirect
RESERVED_CODES = frozenset({"docs", "health", "links", "redoc", "shorten"})


class CodeAllocator:
    """Hands out short codes that are not yet present in the link store."""

    def __init__(
        self,
        store: LinkStore,
        length: Optional[int] = None,
        alphabet: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ):
        self.store = store
        self.length = length or settings.SHORT_CODE_LENGTH
        self.alphabet = alphabet or settings.SHORT_CODE_ALPHABET
        self.max_attempts = max_attempts or settings.CODE_ALLOCATION_MAX_ATTEMPTS

        if self.length < 1:
            raise ValueError("Short code length must be positive")
        if len(set(self.alphabet)) < 2:
            raise ValueError("Short code alphabet needs at least two distinct characters")

    def generate_code(self) -> str:
        return generate(self.alphabet, self.length)

    async def allocate(self) -> str:
        """
        Return a code that no stored link uses.

        Raises:
            AllocationExhaustedError: If every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate_code()
            if code not in RESERVED_CODES and not await self.store.exists(code):
                return code
            logger.debug(f"Short code collision on attempt {attempt}: {code}")

        logger.error(
            f"Short code allocation exhausted after {self.max_attempts} attempts "
            f"(length={self.length}, alphabet size={len(self.alphabet)}); "
            "the code space may be close to saturation"
        )
        raise AllocationExhaustedError(self.max_attempts)
