"""
Property-based tests for the allocation engines.

Properties:
- Shares of any lot with a positive total sum to exactly 100, are never
  negative and carry the stored precision.
- Exactly one line absorbs the rounding difference: the line with the
  largest quantity, the last one on ties.
- Series expansion conserves each source quantity and never produces a
  negative variant.
"""

from decimal import Decimal

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from production_engines.series import expand_for_series
from production_engines.shares import ShareLine, compute_shares
from production_kernel.db.types import QUANTITY_DECIMAL_PLACES
from production_kernel.domain.values import CatchSpec

quantities = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1000000000"),
    places=QUANTITY_DECIMAL_PLACES,
    allow_nan=False,
    allow_infinity=False,
)


def _lines(values):
    return [ShareLine(line_id=i + 1, quantity=q) for i, q in enumerate(values)]


class TestShareProperties:
    """Share computation invariants."""

    @given(values=st.lists(quantities, min_size=1, max_size=30))
    @settings(max_examples=200)
    def test_shares_sum_to_100(self, values):
        assume(sum(values) > 0)

        result = compute_shares(_lines(values))

        assert result.share_total == Decimal("100")
        assert all(line.share >= 0 for line in result.lines)
        assert all(
            line.share.as_tuple().exponent >= -QUANTITY_DECIMAL_PLACES
            for line in result.lines
        )

    @given(values=st.lists(quantities, min_size=1, max_size=30))
    @settings(max_examples=200)
    def test_single_rounding_target(self, values):
        assume(sum(values) > 0)

        result = compute_shares(_lines(values))

        targets = [i for i, line in enumerate(result.lines) if line.is_rounding_target]
        largest = max(range(len(values)), key=lambda i: (values[i], i))
        assert targets == [largest]
        assert values[largest] > 0

    @given(values=st.lists(quantities, min_size=1, max_size=10))
    def test_zero_quantity_lines_get_zero(self, values):
        assume(sum(values) > 0)

        result = compute_shares(_lines(values))

        for line, q in zip(result.lines, values):
            if q == 0:
                assert line.share == 0

    @given(
        values=st.lists(quantities, min_size=1, max_size=10),
        factor=st.integers(min_value=2, max_value=1000),
    )
    def test_scaling_preserves_shares(self, values, factor):
        assume(sum(values) > 0)

        base = compute_shares(_lines(values))
        scaled = compute_shares(_lines([q * factor for q in values]))

        assert base.shares_by_id() == scaled.shares_by_id()


class TestExpansionProperties:
    """Series expansion invariants."""

    @given(
        values=st.lists(quantities, min_size=1, max_size=10),
        series_count=st.integers(min_value=0, max_value=12),
    )
    @settings(max_examples=200)
    def test_quantity_conserved(self, values, series_count):
        catches = [CatchSpec(f"C{i}", "1", q) for i, q in enumerate(values)]

        expansion = expand_for_series(catches, series_count)

        n = max(series_count, 1)
        assert len(expansion) == n * len(values)
        for index, source in enumerate(values):
            group = expansion.group(index)
            assert sum(v.quantity for v in group) == source
            assert all(v.quantity >= 0 for v in group)
            assert [v.series_index for v in group] == list(range(1, n + 1))
            # Only the last variant may differ from the others
            assert len({v.quantity for v in group[:-1]}) <= 1
