"""Test the interpolation clock"""

import asyncio

import pytest

from djcompanion.playback.clock import InterpolationClock
from djcompanion.spotify.models import PlaybackSnapshot


@pytest.fixture
def clock(view, fake_clock):
    return InterpolationClock(view, interval=0.25, clock=fake_clock)


class TestInterpolationClock:
    """Test local progress interpolation between polls"""

    @pytest.mark.asyncio
    async def test_estimate_after_two_seconds(self, clock, view, fake_clock):
        """Test a 5000ms baseline reports about 7000ms two seconds later"""
        clock.restart(PlaybackSnapshot("abc", True, 5000, 200000, sampled_at=fake_clock()))

        fake_clock.advance(2000)

        assert clock.tick() == 7000
        assert view.progress[-1] == (7000, 200000)

        clock.stop()

    @pytest.mark.asyncio
    async def test_never_reports_past_duration(self, clock, view, fake_clock):
        """Test the clock stops instead of reporting beyond the duration"""
        clock.restart(PlaybackSnapshot("abc", True, 199_000, 200_000, sampled_at=fake_clock()))

        fake_clock.advance(500)
        assert clock.tick() == 199_500

        fake_clock.advance(600)
        assert clock.tick() is None
        assert not clock.active

        fake_clock.advance(250)
        assert clock.tick() is None
        assert all(position <= duration for position, duration in view.progress)
        assert len(view.progress) == 1
        clock.stop()

    @pytest.mark.asyncio
    async def test_new_baseline_supersedes_old(self, clock, fake_clock):
        """Test a new poll replaces the baseline and the timer"""
        start = fake_clock()
        clock.restart(PlaybackSnapshot("abc", True, 10_000, 200_000, sampled_at=start))
        old_task = clock._task

        fake_clock.advance(300)
        clock.restart(PlaybackSnapshot("abc", True, 10_500, 200_000, sampled_at=fake_clock()))

        fake_clock.advance(250)
        # Old baseline would give 10_550
        assert clock.tick() == 10_750

        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert old_task.done()
        assert clock._task is not old_task
        clock.stop()

    @pytest.mark.asyncio
    async def test_paused_snapshot_does_not_start(self, clock, fake_clock):
        clock.restart(PlaybackSnapshot("abc", False, 10_000, 200_000, sampled_at=fake_clock()))
        assert not clock.active
        assert clock.tick() is None

    @pytest.mark.asyncio
    async def test_stop(self, clock, fake_clock):
        clock.restart(PlaybackSnapshot("abc", True, 10_000, 200_000, sampled_at=fake_clock()))
        assert clock.active

        clock.stop()

        assert not clock.active
        assert clock.baseline is None

    @pytest.mark.asyncio
    async def test_timer_redraws(self, view, fake_clock):
        """Test the background timer pushes estimates on its own"""
        interpolation = InterpolationClock(view, interval=0.01, clock=fake_clock)
        interpolation.restart(PlaybackSnapshot("abc", True, 1000, 200_000, sampled_at=fake_clock()))

        await asyncio.sleep(0.05)
        interpolation.stop()

        assert view.progress
        assert all(position == 1000 for position, _ in view.progress)
