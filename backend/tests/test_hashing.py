"""Tests for deterministic hashing helpers."""
from storybook.core.hashing import hash_hex, rolling_hash, seeded_sequence


class TestRollingHash:
    def test_empty_string_is_zero(self) -> None:
        assert rolling_hash("") == 0

    def test_small_strings(self) -> None:
        assert rolling_hash("a") == 97
        assert rolling_hash("ab") == 97 * 31 + 98

    def test_matches_java_string_hash(self) -> None:
        """Same values as the classic 31-multiplier string hash."""
        assert rolling_hash("hello") == 99162322

    def test_wraps_to_signed_int32(self) -> None:
        assert rolling_hash("polygenelubricants") == -(2**31)

    def test_stays_in_int32_range_for_long_input(self) -> None:
        value = rolling_hash("x" * 1000)
        assert -(2**31) <= value < 2**31


class TestHashHex:
    def test_is_lowercase_hex_of_absolute_value(self) -> None:
        assert hash_hex("a") == "61"
        assert hash_hex("polygenelubricants") == "80000000"


class TestSeededSequence:
    def test_length_and_range(self) -> None:
        values = seeded_sequence(42, 512)
        assert len(values) == 512
        assert all(0.0 <= v < 1.0 for v in values)

    def test_is_reproducible(self) -> None:
        assert seeded_sequence(-12345, 16) == seeded_sequence(-12345, 16)

    def test_different_seeds_differ(self) -> None:
        assert seeded_sequence(1, 8) != seeded_sequence(2, 8)

    def test_first_value_for_zero_seed(self) -> None:
        assert seeded_sequence(0, 1) == [1013904223 / 2**32]
