"""Tests for the autopilot and command limiting."""

import math

import pytest

from jetsim.gnc.control import (
    AutopilotLimits,
    CommandLimiter,
    CommandLimits,
    ControlCommand,
    ControlLaw,
    FlightMeasurements,
    PIDAutopilot,
    clamp_manual,
    heading_error,
    sanitize,
)

DT = 1.0 / 60.0

CRUISE = FlightMeasurements(altitude=3000.0, indicated_airspeed=130.0, heading=90.0)
TRIMMED = ControlCommand(throttle=0.5)


@pytest.fixture
def autopilot() -> PIDAutopilot:
    ap = PIDAutopilot()
    ap.engage(CRUISE)
    return ap


# =============================================================================
# Heading Error
# =============================================================================


class TestHeadingError:
    """Test the shortest-turn heading error."""

    @pytest.mark.parametrize(
        "target, heading, expected",
        [
            (10.0, 350.0, 20.0),
            (350.0, 10.0, -20.0),
            (90.0, 0.0, 90.0),
            (0.0, 90.0, -90.0),
            (180.0, 0.0, -180.0),
            (45.0, 45.0, 0.0),
        ],
    )
    def test_wraps_through_north(self, target, heading, expected):
        """Error takes the short way round."""
        assert heading_error(target, heading) == pytest.approx(expected)


# =============================================================================
# Engagement
# =============================================================================


class TestEngagement:
    """Test engaging and disengaging."""

    def test_protocol(self):
        """The stock autopilot satisfies the control law interface."""
        assert isinstance(PIDAutopilot(), ControlLaw)

    def test_engage_snaps_targets(self, autopilot):
        """Targets start at the current flight condition."""
        targets = autopilot.targets
        assert autopilot.engaged
        assert targets.altitude == 3000.0
        assert targets.speed == 130.0
        assert targets.heading == 90.0

    def test_no_jump_on_engage(self, autopilot):
        """First command after engaging matches the current controls."""
        command = autopilot.compute(CRUISE, TRIMMED, DT)
        assert command.throttle == pytest.approx(0.5)
        assert command.pitch == pytest.approx(0.0)
        assert command.roll == pytest.approx(0.0)
        assert command.yaw == pytest.approx(0.0)

    def test_disengaged_returns_current(self):
        """A disengaged autopilot hands back the current controls."""
        ap = PIDAutopilot()
        current = ControlCommand(throttle=0.3, pitch=0.1)
        assert ap.compute(CRUISE, current, DT) is current

    def test_disengage(self, autopilot):
        """Disengaging stops command output."""
        autopilot.disengage()
        assert not autopilot.engaged
        assert autopilot.compute(CRUISE, TRIMMED, DT) is TRIMMED

    def test_status(self, autopilot):
        """Status reflects the last command and errors."""
        assert autopilot.status().command is None
        autopilot.update_targets(altitude=3100.0)
        autopilot.compute(CRUISE, TRIMMED, DT)
        status = autopilot.status()
        assert status.engaged
        assert status.altitude_error == pytest.approx(100.0)
        assert status.command is not None
        assert status.targets.altitude == 3100.0


# =============================================================================
# Targets and Tuning
# =============================================================================


class TestTargets:
    """Test target updates and in-flight tuning."""

    def test_non_finite_targets_ignored(self, autopilot):
        """NaN and infinity leave the target alone."""
        autopilot.update_targets(altitude=math.nan, speed=math.inf, heading=math.nan)
        assert autopilot.targets.altitude == 3000.0
        assert autopilot.targets.speed == 130.0
        assert autopilot.targets.heading == 90.0

    def test_heading_wrapped(self, autopilot):
        """Heading targets wrap into [0, 360)."""
        autopilot.update_targets(heading=370.0)
        assert autopilot.targets.heading == pytest.approx(10.0)
        autopilot.update_targets(heading=-90.0)
        assert autopilot.targets.heading == pytest.approx(270.0)

    def test_negative_speed_floored(self, autopilot):
        """Speed targets are never negative."""
        autopilot.update_targets(speed=-20.0)
        assert autopilot.targets.speed == 0.0

    def test_tune(self, autopilot):
        """Only the given gains change."""
        gains = autopilot.tune("heading", kp=0.05)
        assert gains.kp == 0.05
        assert gains.ki == 0.0005
        assert gains.kd == 0.02

    def test_tune_unknown_loop(self, autopilot):
        """Unknown loop names are rejected."""
        with pytest.raises(ValueError, match="Unknown autopilot loop"):
            autopilot.tune("vertical_speed", kp=1.0)


# =============================================================================
# Loop Behavior
# =============================================================================


class TestLoops:
    """Test the three hold loops."""

    def test_climb_gives_nose_up(self, autopilot):
        """A target step kicks the derivative for one tick, then P alone remains."""
        autopilot.update_targets(altitude=3000.0 + 304.8)
        first = autopilot.compute(CRUISE, TRIMMED, DT)
        assert first.pitch == pytest.approx(autopilot.limits.max_pitch)
        steady = autopilot.compute(CRUISE, TRIMMED, DT)
        assert steady.pitch == pytest.approx(0.0002 * 304.8)

    def test_pitch_clamped(self, autopilot):
        """Pitch commands stay inside the pitch limits."""
        limits = autopilot.limits
        autopilot.update_targets(altitude=20000.0)
        assert autopilot.compute(CRUISE, TRIMMED, DT).pitch == pytest.approx(limits.max_pitch)
        autopilot.update_targets(altitude=0.0)
        assert autopilot.compute(CRUISE, TRIMMED, DT).pitch == pytest.approx(limits.min_pitch)

    def test_throttle_step_limited(self, autopilot):
        """The speed loop moves the throttle at most 0.05 per tick."""
        autopilot.update_targets(speed=230.0)
        assert autopilot.compute(CRUISE, TRIMMED, DT).throttle == pytest.approx(0.55)

        autopilot.engage(CRUISE)
        autopilot.update_targets(speed=30.0)
        assert autopilot.compute(CRUISE, TRIMMED, DT).throttle == pytest.approx(0.45)

    def test_throttle_range(self, autopilot):
        """Throttle stays inside [0.2, 0.95]."""
        autopilot.update_targets(speed=230.0)
        high = autopilot.compute(CRUISE, ControlCommand(throttle=0.94), DT)
        assert high.throttle == pytest.approx(0.95)

        autopilot.engage(CRUISE)
        low = autopilot.compute(CRUISE, ControlCommand(throttle=0.0), DT)
        assert low.throttle == pytest.approx(0.2)

    def test_turn_clamped_and_coordinated(self, autopilot):
        """Roll is limited and the rudder opposes it at 0.1 x roll."""
        autopilot.update_targets(heading=180.0)
        command = autopilot.compute(CRUISE, TRIMMED, DT)
        assert command.roll == pytest.approx(0.5)
        assert command.yaw == pytest.approx(-0.05)

    def test_authority_follows_safety_limits(self):
        """Pitch and roll authority come from the shared safety limits."""
        safety = CommandLimits(max_pitch=0.1, min_pitch=-0.05, max_roll=0.2)
        ap = PIDAutopilot(limits=AutopilotLimits(safety=safety))
        ap.engage(CRUISE)
        assert ap.limits.max_pitch == 0.1
        assert ap.limits.min_pitch == -0.05
        assert ap.limits.max_roll == 0.2

        ap.update_targets(altitude=20000.0, heading=180.0)
        command = ap.compute(CRUISE, TRIMMED, DT)
        assert command.pitch == pytest.approx(0.1)
        assert command.roll == pytest.approx(0.2)

    def test_left_turn(self, autopilot):
        """A target to the left rolls left."""
        autopilot.update_targets(heading=80.0)
        command = autopilot.compute(CRUISE, TRIMMED, DT)
        assert command.roll < 0.0
        assert command.yaw > 0.0


# =============================================================================
# Command Limiting
# =============================================================================


class TestCommandLimits:
    """Test sanitization, clamping and rate limiting."""

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf, "0.5", None, True, [1.0]])
    def test_sanitize_falls_back(self, bad):
        """Anything but a finite number uses the fallback."""
        assert sanitize(bad, 0.25) == 0.25

    def test_sanitize_passes_numbers(self):
        """Finite numbers come back as floats."""
        assert sanitize(3, 0.0) == 3.0
        assert isinstance(sanitize(3, 0.0), float)

    def test_clamp_manual(self):
        """Manual commands are held to the safety limits."""
        limits = CommandLimits()
        command = clamp_manual(
            ControlCommand(throttle=1.5, pitch=1.0, roll=-2.0, yaw=0.9), limits
        )
        assert command.throttle == 1.0
        assert command.pitch == pytest.approx(limits.max_pitch)
        assert command.roll == pytest.approx(-0.5)
        assert command.yaw == pytest.approx(0.3)

    def test_rate_limit(self):
        """A full-throttle slam moves at most max_rate * dt per tick."""
        limiter = CommandLimiter()
        applied = limiter.shape(ControlCommand(throttle=1.0), ControlCommand(), DT)
        assert applied.throttle == pytest.approx(0.5 * DT)

    def test_smoothing(self):
        """Small demands are approached by a fixed fraction per tick."""
        limiter = CommandLimiter()
        applied = limiter.shape(ControlCommand(pitch=0.01), ControlCommand(), DT)
        assert applied.pitch == pytest.approx(0.4 * 0.01)

    def test_converges(self):
        """Repeated shaping reaches the command."""
        limiter = CommandLimiter()
        applied = ControlCommand()
        target = ControlCommand(throttle=0.8, pitch=0.1, roll=-0.3, yaw=0.05)
        for _ in range(600):
            applied = limiter.shape(target, applied, DT)
        assert applied.throttle == pytest.approx(0.8)
        assert applied.roll == pytest.approx(-0.3)
