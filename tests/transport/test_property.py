"""
Property-based tests for transport option resolution.

This module uses Hypothesis to check invariants of the option coercion
over generated option bags.
"""

from datetime import timedelta

from hypothesis import given
from hypothesis import strategies as st

from mcpconnector.transport.options import HEADER_PREFIX, resolve_sse_options

seconds = st.integers(min_value=0, max_value=10**6)
header_names = st.text(min_size=1, max_size=20)
header_values = st.text(max_size=50)
headers = st.dictionaries(header_names, header_values, max_size=5)
unknown_keys = st.dictionaries(
    st.text(max_size=10).filter(
        lambda k: not k.startswith(HEADER_PREFIX)
        and k not in ("connectionTimeout", "maxReconnectAttempts", "reconnectDelay")
    ),
    st.text(max_size=10),
    max_size=5,
)


class TestSseOptionProperties:
    """Property-based tests for resolve_sse_options."""

    @given(timeout=seconds, attempts=seconds, delay=seconds, header_map=headers, extra=unknown_keys)
    def test_values_are_coerced(self, timeout, attempts, delay, header_map, extra):
        """Test that every numeric option survives as its typed value."""
        bag = dict(extra)
        bag.update(
            {
                "connectionTimeout": str(timeout),
                "maxReconnectAttempts": str(attempts),
                "reconnectDelay": str(delay),
            }
        )
        bag.update({HEADER_PREFIX + name: value for name, value in header_map.items()})

        options = resolve_sse_options(bag)

        assert options.connection_timeout == timedelta(seconds=timeout)
        assert options.max_reconnect_attempts == attempts
        assert options.reconnect_delay == timedelta(seconds=delay)
        assert options.additional_headers == (header_map or None)

    @given(bag=unknown_keys)
    def test_unknown_keys_are_ignored(self, bag):
        """Test that options without known keys resolve to the defaults."""
        assert resolve_sse_options(bag) == resolve_sse_options({})

    @given(header_map=headers)
    def test_resolution_is_deterministic(self, header_map):
        """Test that the same bag always resolves to equal options."""
        bag = {HEADER_PREFIX + name: value for name, value in header_map.items()}
        assert resolve_sse_options(bag) == resolve_sse_options(dict(bag))
