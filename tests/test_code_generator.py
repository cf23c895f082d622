"""Unit tests for short-code generation and custom code validation."""

import pytest

from shortener.code_generator import ALPHABET, CodeGenerator
from shortener.config import Settings


@pytest.fixture
def generator() -> CodeGenerator:
    return CodeGenerator.from_settings(Settings())


def test_alphabet_is_62_case_sensitive_alphanumerics() -> None:
    assert len(ALPHABET) == 62
    assert len(set(ALPHABET)) == 62
    assert all(c.isascii() and c.isalnum() for c in ALPHABET)


def test_generate_default_length(generator: CodeGenerator) -> None:
    assert len(generator.generate()) == 7


def test_generate_custom_length() -> None:
    assert len(CodeGenerator(length=10).generate()) == 10


def test_generate_only_alphabet_characters(generator: CodeGenerator) -> None:
    for _ in range(200):
        code = generator.generate()
        assert len(code) == generator.length
        assert all(c in ALPHABET for c in code)


def test_generate_uniqueness(generator: CodeGenerator) -> None:
    codes = {generator.generate() for _ in range(1000)}
    # With 62^7 possibilities, 1000 codes should all be unique
    assert len(codes) == 1000


@pytest.mark.parametrize("code", ["abcd", "short1", "Promo2024", "A1b2C3d4E5"])
def test_validate_custom_accepts(generator: CodeGenerator, code: str) -> None:
    assert generator.validate_custom(code) is True


@pytest.mark.parametrize("code", ["abc", "a" * 11, "my-code", "has space", "ünï", "", None, 12345])
def test_validate_custom_rejects(generator: CodeGenerator, code) -> None:
    assert generator.validate_custom(code) is False


def test_validate_custom_respects_configured_window() -> None:
    generator = CodeGenerator(custom_min_length=6, custom_max_length=8)
    assert not generator.validate_custom("abcde")
    assert generator.validate_custom("abcdef")
    assert not generator.validate_custom("abcdefghi")
