"""
Tests for the Frame Driver and Command-Line Runner
"""

import logging

import pytest
import numpy as np
from surfgrow.__main__ import main, parse_args
from surfgrow.core.growth import GrowthConfig, StepStats, SurfaceGrowth
from surfgrow.driver import FrameDriver
from surfgrow.fields import SphereField
from surfgrow.logging_config import setup_logging


class FakeClock:
    """Clock returning a scripted sequence of timestamps."""

    def __init__(self, times):
        self.times = list(times)

    def __call__(self):
        return self.times.pop(0)


class StubSimulation:
    """Minimal stand-in exposing step() and particles()."""

    def __init__(self):
        self.steps = 0

    def step(self):
        self.steps += 1
        return StepStats(step=self.steps, particle_count=1, average_neighbors=0.0,
                         median_separation=float('inf'), most_isolated_distance=float('inf'),
                         force_strength=1e-3)

    def particles(self):
        return np.zeros((1, 3))


class TestFrameDriver:
    """Test suite for cooperative frame scheduling."""

    def test_sleeps_remaining_budget(self):
        sleeps = []
        # Frame 1 takes 30 ms, frame 2 overruns by 50 ms
        clock = FakeClock([0.0, 0.03, 0.1, 0.25])
        driver = FrameDriver(StubSimulation(), frame_budget=0.1,
                             clock=clock, sleep=sleeps.append)

        assert driver.run(max_frames=2) == 2
        assert sleeps[0] == pytest.approx(0.07)
        assert sleeps[1] == 0.0
        assert driver.frames == 2
        assert driver.dropped_frames == 1

    def test_on_frame_receives_snapshot_and_stats(self):
        received = []
        driver = FrameDriver(StubSimulation(), frame_budget=0.0,
                             on_frame=lambda particles, stats: received.append((particles, stats)),
                             sleep=lambda s: None)
        driver.run(max_frames=3)

        assert len(received) == 3
        assert [stats.step for _, stats in received] == [1, 2, 3]
        assert received[0][0].shape == (1, 3)
        assert driver.last_stats.step == 3

    def test_stop_from_callback(self):
        calls = []

        def on_frame(particles, stats):
            calls.append(stats.step)
            if len(calls) == 4:
                driver.stop()

        driver = FrameDriver(StubSimulation(), frame_budget=0.0, on_frame=on_frame,
                             sleep=lambda s: None)
        assert driver.run() == 4
        assert not driver.running

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            FrameDriver(StubSimulation(), frame_budget=-1.0)

    def test_drives_real_simulation(self):
        growth = SurfaceGrowth(SphereField(radius=0.5), GrowthConfig(),
                               rng=np.random.default_rng(0))
        growth.seed([0.1, 0.0, 0.0])
        driver = FrameDriver(growth, frame_budget=0.0)

        assert driver.run(max_frames=5) == 5
        assert growth.state.step_count == 5
        assert growth.state.num_particles > 1


class TestCommandLine:
    """Test suite for the headless runner."""

    def test_parse_defaults(self):
        args = parse_args([])
        assert args.seed == 123
        assert args.level_curve == 0.3
        assert args.steps == 1000

    def test_runs_steps(self):
        code = main(['--seed', '3', '--level-curve', '0.5', '--steps', '5',
                     '--log-every', '1', '--log-level', 'WARNING'])
        assert code == 0

    def test_degenerate_seed_exit_code(self):
        # Remapped noise lies in [0, 1], so a negative level curve has no surface
        code = main(['--level-curve', '-0.5', '--steps', '5', '--log-level', 'ERROR'])
        assert code == 1

    def test_log_file(self, tmp_path):
        log_path = tmp_path / "run.log"
        code = main(['--seed', '3', '--level-curve', '0.5', '--steps', '3',
                     '--log-every', '1', '--log-file', str(log_path)])
        assert code == 0

        text = log_path.read_text(encoding='utf-8')
        assert "surfgrow.core.growth - INFO - Seeded at" in text
        assert "step 3: particles=" in text


class TestLoggingSetup:
    """Test suite for package logger configuration."""

    def test_level_by_name(self):
        logger = setup_logging("debug")
        assert logger.name == "surfgrow"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_replaces_handlers(self, tmp_path):
        setup_logging(logging.INFO, str(tmp_path / "first.log"))
        logger = setup_logging(logging.WARNING)
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("chatty")
