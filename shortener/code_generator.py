"""Short code generation and custom code validation.

Generated codes are drawn with nanoid, which reads from ``os.urandom``, over
the 62 case-sensitive alphanumerics. No collision check happens here; a
duplicate surfaces later as the store's unique-constraint conflict.

How to Use
===========
**Step 1 — Build a generator from settings**::
    generator = CodeGenerator.from_settings(settings)

**Step 2 — Generate or validate**::
    code = generator.generate()              # e.g. "aZ3kP9q"
    generator.validate_custom("promo2024")   # True

Key Behaviours
===============
- 62^7 ≈ 3.5e12 codes at the default length; collisions are rare, not impossible.
- Custom codes are checked syntactically only (alphabet + length window).
"""

import re

from nanoid import generate

__all__ = ["ALPHABET", "CodeGenerator"]

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


class CodeGenerator:
    def __init__(self, length: int = 7, custom_min_length: int = 4, custom_max_length: int = 10) -> None:
        assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
        assert 0 < custom_min_length <= custom_max_length, "custom code length window is empty"
        self.length = length
        self.custom_min_length = custom_min_length
        self.custom_max_length = custom_max_length
        self._custom_pattern = re.compile(
            rf"^[{re.escape(ALPHABET)}]{{{custom_min_length},{custom_max_length}}}$"
        )

    @classmethod
    def from_settings(cls, settings) -> "CodeGenerator":
        return cls(
            length=settings.SHORT_CODE_LENGTH,
            custom_min_length=settings.CUSTOM_CODE_MIN_LENGTH,
            custom_max_length=settings.CUSTOM_CODE_MAX_LENGTH,
        )

    def generate(self) -> str:
        return generate(ALPHABET, self.length)

    def validate_custom(self, code: str | None) -> bool:
        if not isinstance(code, str):
            return False
        return self._custom_pattern.fullmatch(code) is not None
