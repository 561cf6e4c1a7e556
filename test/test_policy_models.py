from datetime import timedelta

import pytest

from autodelete.policies.models import MAX_DELAY_MINUTES, ChannelPolicy, ChannelSettings


class TestChannelPolicy:
    def test_defaults(self) -> None:
        policy = ChannelPolicy(channel_id="200")

        assert policy.enabled is False
        assert policy.delay_minutes == 2
        assert policy.delay == timedelta(minutes=2)

    @pytest.mark.parametrize("minutes", [0, -1, MAX_DELAY_MINUTES + 1])
    def test_rejects_out_of_range_delay(self, minutes: int) -> None:
        with pytest.raises(ValueError):
            ChannelPolicy(channel_id="200", delay_minutes=minutes)

    def test_accepts_max_delay(self) -> None:
        assert ChannelPolicy(channel_id="200", delay_minutes=MAX_DELAY_MINUTES).delay == timedelta(days=365)

    def test_rejects_empty_channel(self) -> None:
        with pytest.raises(ValueError):
            ChannelPolicy(channel_id="")

    def test_with_helpers_return_copies(self) -> None:
        policy = ChannelPolicy(channel_id="200", delay_minutes=3)

        enabled = policy.with_enabled(True)
        longer = enabled.with_delay(10)

        assert policy.enabled is False
        assert enabled.enabled is True and enabled.delay_minutes == 3
        assert longer.enabled is True and longer.delay_minutes == 10

    def test_from_row(self) -> None:
        row = ChannelSettings(channel_id="200", server_id="100", enabled=True, delete_after_minutes=4)

        assert ChannelPolicy.from_row(row) == ChannelPolicy(
            channel_id="200", server_id="100", enabled=True, delay_minutes=4
        )
