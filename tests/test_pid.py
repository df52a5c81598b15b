"""Tests for the PID controller."""

import pytest

from jetsim.gnc.control import PIDController, PIDGains

DT = 1.0 / 60.0


class TestPIDTerms:
    """Test the individual PID terms."""

    def test_proportional(self):
        """Output is kp * error with no I or D gain."""
        pid = PIDController(kp=2.0)
        assert pid.calculate(setpoint=10.0, measured=7.0, dt=DT) == pytest.approx(6.0)

    def test_first_sample_derivative_from_zero(self):
        """The first sample after a reset differences against a zero previous error."""
        pid = PIDController(kp=0.0, ki=0.0, kd=1.0)
        pid.update(3.0, 0.5)
        pid.reset()
        assert pid.previous_error == 0.0
        assert pid.calculate(setpoint=1.0, measured=0.0, dt=0.5) == pytest.approx(2.0)
        assert pid.previous_error == 1.0

    def test_derivative_on_error(self):
        """Backward difference of the error on later samples."""
        pid = PIDController(kp=0.0, kd=0.5)
        pid.update(1.0, 0.1)
        assert pid.update(2.0, 0.1) == pytest.approx(0.5 * (2.0 - 1.0) / 0.1)

    def test_integral_accumulates(self):
        """Integral is the running sum of error * dt."""
        pid = PIDController(kp=0.0, ki=1.0)
        for _ in range(10):
            out = pid.update(2.0, 0.1)
        assert pid.integral == pytest.approx(2.0)
        assert out == pytest.approx(2.0)

    def test_non_positive_dt_returns_zero(self):
        """dt <= 0 produces no output and leaves the state alone."""
        pid = PIDController(kp=1.0, ki=1.0)
        assert pid.update(5.0, 0.0) == 0.0
        assert pid.update(5.0, -0.1) == 0.0
        assert pid.integral == 0.0
        assert pid.previous_error == 0.0


class TestPIDLimits:
    """Test anti-windup and output saturation."""

    def test_anti_windup_clamps_integral(self):
        """A long saturating error cannot wind the integral past its limit."""
        pid = PIDController(kp=0.0, ki=1.0, output_limits=(-1.0, 1.0))
        for _ in range(6000):  # 100 s of error 5
            pid.update(5.0, DT)
        assert pid.integral == pytest.approx(10.0)

    def test_unwinds_immediately_after_reversal(self):
        """With the integral clamped, a reversed error pulls it back at once."""
        pid = PIDController(kp=0.0, ki=1.0)
        for _ in range(6000):
            pid.update(5.0, DT)
        pid.update(-5.0, DT)
        assert pid.integral < 10.0

    def test_custom_integral_limits(self):
        """Integral limits are configurable."""
        pid = PIDController(ki=1.0, integral_limits=(-0.5, 0.5))
        for _ in range(100):
            pid.update(-1.0, 0.1)
        assert pid.integral == pytest.approx(-0.5)

    def test_output_limits(self):
        """Output saturates at the limits."""
        pid = PIDController(kp=100.0, output_limits=(-0.1, 0.25))
        assert pid.update(10.0, DT) == pytest.approx(0.25)
        assert pid.update(-10.0, DT) == pytest.approx(-0.1)


class TestPIDState:
    """Test reset and gain handling."""

    def test_reset_clears_state_only(self):
        """reset() clears integral and previous error, keeps gains."""
        pid = PIDController(kp=1.0, ki=0.5, kd=0.1)
        pid.update(3.0, DT)
        pid.update(4.0, DT)
        pid.reset()
        assert pid.integral == 0.0
        assert pid.previous_error == 0.0
        assert pid.gains == PIDGains(kp=1.0, ki=0.5, kd=0.1)

    def test_from_gains(self):
        """Construction from a PIDGains object."""
        pid = PIDController.from_gains(PIDGains(kp=0.02, ki=0.0005, kd=0.02), (-0.5, 0.5))
        assert pid.kp == 0.02
        assert pid.output_limits == (-0.5, 0.5)

    def test_gains_setter(self):
        """Gains can be replaced in flight."""
        pid = PIDController()
        pid.gains = PIDGains(kp=3.0, ki=2.0, kd=1.0)
        assert (pid.kp, pid.ki, pid.kd) == (3.0, 2.0, 1.0)
