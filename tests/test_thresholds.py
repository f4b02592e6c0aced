"""Tests for range thresholds and plain limits."""

import pytest

from device_probes.exceptions import ParseError
from device_probes.thresholds import (
    NEG_INF,
    POS_INF,
    Limit,
    Threshold,
    ThresholdSpec,
    evaluate,
    parse_limit,
    parse_range,
    parse_threshold,
)


class TestThresholdSpecParse:
    """Tests for ThresholdSpec.parse()."""

    def test_bare_end_alerts_above(self) -> None:
        """A bare number bounds the range from above only."""
        spec = ThresholdSpec.parse("10")

        assert spec.lower == NEG_INF
        assert spec.upper == 10
        assert spec.inverted is False

    def test_start_and_end(self) -> None:
        spec = ThresholdSpec.parse("5:20")

        assert (spec.lower, spec.upper) == (5, 20)

    def test_tilde_start_is_negative_infinity(self) -> None:
        spec = ThresholdSpec.parse("~:40")

        assert spec.lower == NEG_INF
        assert spec.upper == 40

    def test_open_end(self) -> None:
        spec = ThresholdSpec.parse("30:")

        assert spec.lower == 30
        assert spec.upper == POS_INF

    def test_inverted(self) -> None:
        spec = ThresholdSpec.parse("@10:20")

        assert spec.inverted is True
        assert (spec.lower, spec.upper) == (10, 20)

    def test_fractions_are_truncated_toward_zero(self) -> None:
        """10.7 becomes 10 and -5.9 becomes -5."""
        assert ThresholdSpec.parse("10.7").upper == 10
        assert ThresholdSpec.parse("-5.9:").lower == -5

    def test_surrounding_whitespace_ignored(self) -> None:
        assert ThresholdSpec.parse(" 10 ") == ThresholdSpec.parse("10")

    @pytest.mark.parametrize("text", ["", "abc", "@", "5:~", "10:20:30", "1e3"])
    def test_malformed_expressions_rejected(self, text: str) -> None:
        with pytest.raises(ParseError):
            ThresholdSpec.parse(text)

    def test_start_exceeding_end_rejected(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            ThresholdSpec.parse("10:5")

        assert "start exceeds end" in exc_info.value.message

    def test_parse_error_is_value_error(self) -> None:
        """Callers catching ValueError also see threshold errors."""
        with pytest.raises(ValueError):
            parse_threshold("nope")

    def test_direct_construction_validates_bounds(self) -> None:
        with pytest.raises(ValueError):
            ThresholdSpec(lower=5, upper=1)


class TestThresholdSpecEvaluate:
    """Tests for ThresholdSpec.evaluate()."""

    def test_bare_end(self) -> None:
        spec = ThresholdSpec.parse("10")

        assert spec.evaluate(11) is True
        assert spec.evaluate(10) is False
        assert spec.evaluate(-5) is False

    def test_closed_range_bounds_are_inclusive(self) -> None:
        spec = ThresholdSpec.parse("5:20")

        assert spec.evaluate(4) is True
        assert spec.evaluate(5) is False
        assert spec.evaluate(20) is False
        assert spec.evaluate(21) is True

    def test_open_end_alerts_below_start(self) -> None:
        spec = ThresholdSpec.parse("30:")

        assert spec.evaluate(29) is True
        assert spec.evaluate(1000) is False

    def test_inverted_alerts_inside(self) -> None:
        spec = ThresholdSpec.parse("@10:20")

        assert spec.evaluate(10) is True
        assert spec.evaluate(15) is True
        assert spec.evaluate(21) is False

    def test_inverted_zero_catches_empty_counts(self) -> None:
        """@~:0 alerts when a count drops to zero."""
        spec = ThresholdSpec.parse("@~:0")

        assert spec.evaluate(0) is True
        assert spec.evaluate(1) is False

    def test_inverted_bare_end(self) -> None:
        """@5 alerts on anything up to and including 5."""
        spec = ThresholdSpec.parse("@5")

        assert spec.evaluate(3) is True
        assert spec.evaluate(5) is True
        assert spec.evaluate(6) is False

    def test_tilde_start_never_alerts_low(self) -> None:
        spec = ThresholdSpec.parse("~:5")

        assert spec.evaluate(-1e12) is False
        assert spec.evaluate(5) is False
        assert spec.evaluate(6) is True

    def test_truncated_bound_applies(self) -> None:
        assert evaluate(ThresholdSpec.parse("10.7"), 10.5) is True

    def test_breached_ignores_total(self) -> None:
        spec = ThresholdSpec.parse("10")

        assert spec.breached(11, total=100) is True


class TestThresholdSpecRender:
    """Tests for perfdata rendering of ranges."""

    @pytest.mark.parametrize("text", ["10", "5:20", "30:", "@10:20", "~:"])
    def test_render_matches_input(self, text: str) -> None:
        assert str(ThresholdSpec.parse(text)) == text

    def test_tilde_start_renders_as_bare_end(self) -> None:
        """~:40 and 40 are the same range and render the short way."""
        assert str(ThresholdSpec.parse("~:40")) == "40"
        assert str(ThresholdSpec.parse("@~:40")) == "@40"

    def test_render_normalizes_fractions(self) -> None:
        assert ThresholdSpec.parse("10.9").render() == "10"


class TestLimit:
    """Tests for plain N / N% limits."""

    def test_parse_absolute(self) -> None:
        assert Limit.parse("80") == Limit(value=80, percent=False)

    def test_parse_percent(self) -> None:
        assert Limit.parse(" 80 % ") == Limit(value=80, percent=True)

    @pytest.mark.parametrize("text", ["", "%", "abc", "-1", "nan"])
    def test_invalid_limits_rejected(self, text: str) -> None:
        with pytest.raises(ParseError):
            Limit.parse(text)

    def test_absolute_limit_alerts_at_or_above(self) -> None:
        limit = Limit(80)

        assert limit.breached(80) is True
        assert limit.breached(79.9) is False

    def test_percent_limit_uses_total(self) -> None:
        limit = Limit(50, percent=True)

        assert limit.breached(5, total=10) is True
        assert limit.breached(4, total=10) is False

    def test_percent_limit_without_total_is_undecided(self) -> None:
        """No positive total means the comparison cannot be made."""
        limit = Limit(50, percent=True)

        assert limit.breached(5) is None
        assert limit.breached(5, total=0) is None

    def test_resolve_and_render(self) -> None:
        limit = Limit(50, percent=True)

        assert limit.resolve(10) == 5
        assert limit.render(10) == "5"
        assert limit.render(None) == ""
        assert Limit(12).render() == "12"

    def test_str(self) -> None:
        assert str(Limit(80, percent=True)) == "80%"
        assert str(Limit(12.5)) == "12.5"


class TestOptionalParsers:
    """Tests for parse_limit() and parse_range()."""

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_means_no_threshold(self, text) -> None:
        assert parse_limit(text) is None
        assert parse_range(text) is None

    def test_parsers_return_thresholds(self) -> None:
        assert isinstance(parse_limit("10%"), Threshold)
        assert isinstance(parse_range("@5:10"), Threshold)
