"""Integration tests for the fixed-step flight simulator."""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from jetsim.dynamics import FIXED_DT, FlapDetent, RigidBodyState
from jetsim.environment import G0
from jetsim.gnc.control import CommandLimits, PIDGains
from jetsim.simulation import ControlInputs, FlightSimulator, SimConfig, trim_level_flight
from jetsim.vehicle import AircraftConfig


@pytest.fixture
def cruise() -> FlightSimulator:
    """Trimmed level flight at 3000 m, 150 m/s."""
    return FlightSimulator.from_trim(altitude=3000.0, airspeed=150.0)


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    """Test simulator setup."""

    def test_default_parked(self):
        """Without a state the aircraft sits on the runway with full tanks."""
        sim = FlightSimulator()
        assert sim.on_ground
        assert sim.state.fuel == AircraftConfig().fuel_weight
        assert sim.mass == pytest.approx(63000.0)
        assert sim.time == 0.0

    def test_config_from_mapping(self):
        """A partial mapping is coerced into a configuration."""
        sim = FlightSimulator(config={"wingArea": 122.6, "fuelWeight": "lots"})
        assert sim.config.wing_area == 122.6
        assert sim.config.fuel_weight == AircraftConfig().fuel_weight

    def test_bad_sim_config(self):
        """Nonsense step settings raise."""
        with pytest.raises(ValueError, match="fixed_dt"):
            SimConfig(fixed_dt=0.0)
        with pytest.raises(ValueError, match="damping"):
            SimConfig(damping=(0.98, 1.5, 0.98))

    def test_from_trim(self, cruise):
        """Trimmed start is airborne, gear up, throttle set."""
        snapshot = cruise.get_aircraft_state()
        assert not snapshot.on_ground
        assert not snapshot.controls.gear_down
        assert 0.0 < snapshot.controls.throttle < 1.0
        assert snapshot.altitude == pytest.approx(3000.0)

    def test_above_atmosphere(self):
        """Above the atmosphere table the aircraft steps with no air loads."""
        state = RigidBodyState.level_flight(90000.0, 100.0, fuel=1000.0)
        sim = FlightSimulator(state=state)
        snapshot = sim.update()
        assert sim.time == pytest.approx(FIXED_DT)
        assert not snapshot.crashed
        assert math.isfinite(snapshot.altitude)
        assert sim.diagnostics().aero.lift == 0.0

    def test_trim_above_atmosphere(self):
        """Trimming in vacuum reports failure instead of raising."""
        trim = trim_level_flight(AircraftConfig(), 90000.0, 100.0)
        assert not trim.converged
        assert trim.throttle == 1.0


# =============================================================================
# Trimmed Flight
# =============================================================================


class TestTrimmedFlight:
    """Test that trimmed flight holds without inputs."""

    def test_holds_for_ten_seconds(self, cruise):
        """600 steps later altitude and speed are essentially unchanged."""
        for _ in range(600):
            snapshot = cruise.update()
        assert snapshot.time == pytest.approx(10.0)
        assert snapshot.altitude == pytest.approx(3000.0, abs=1.0)
        assert snapshot.true_airspeed == pytest.approx(150.0, abs=0.5)
        assert abs(snapshot.roll_deg) < 0.01
        assert snapshot.alarms == ()
        assert not snapshot.crashed

    def test_flies_along_heading(self):
        """Heading 90 flies east."""
        sim = FlightSimulator.from_trim(heading=90.0)
        for _ in range(60):
            snapshot = sim.update()
        assert snapshot.position[1] == pytest.approx(150.0, rel=0.01)
        assert abs(snapshot.position[0]) < 1.0

    def test_burns_fuel(self, cruise):
        """Fuel decreases while the engines run."""
        start = cruise.state.fuel
        for _ in range(60):
            cruise.update()
        assert cruise.state.fuel < start
        assert cruise.mass < AircraftConfig().mass


# =============================================================================
# Time Stepping
# =============================================================================


class TestTimeStepping:
    """Test the fixed-step accumulator."""

    def test_single_step_without_dt(self, cruise):
        """update() with no frame time runs exactly one step."""
        cruise.update()
        assert cruise.time == pytest.approx(FIXED_DT)

    def test_frame_rate_independent(self):
        """Ten seconds as sixty 1/6 s frames equal six hundred single steps."""
        stepped = FlightSimulator.from_trim()
        framed = FlightSimulator.from_trim()
        first = {"throttle": 0.6, "pitch": 0.02, "roll": 0.1}

        stepped.update(first)
        for _ in range(599):
            stepped.update()
        framed.update(first, dt=1.0 / 6.0)
        for _ in range(59):
            framed.update(dt=1.0 / 6.0)

        assert framed.time == pytest.approx(stepped.time)
        assert framed.time == pytest.approx(10.0)
        assert_allclose(framed.state.position, stepped.state.position)
        assert_allclose(framed.state.velocity, stepped.state.velocity)
        assert_allclose(framed.state.orientation, stepped.state.orientation)

    def test_long_frame_clamped(self, cruise):
        """A 1 s frame is cut to 0.25 s, 15 steps."""
        cruise.update(dt=1.0)
        assert cruise.time == pytest.approx(15 * FIXED_DT)

    def test_short_frames_accumulate(self, cruise):
        """Frames shorter than a step are carried over."""
        cruise.update(dt=FIXED_DT / 2.0)
        assert cruise.time == 0.0
        cruise.update(dt=FIXED_DT / 2.0)
        assert cruise.time == pytest.approx(FIXED_DT)

    @pytest.mark.parametrize("dt", [-1.0, math.nan, math.inf])
    def test_invalid_frame_ignored(self, cruise, dt):
        """Negative or non-finite frame times do not step."""
        cruise.update(dt=dt)
        assert cruise.time == 0.0


# =============================================================================
# Manual Control
# =============================================================================


class TestManualControl:
    """Test the manual input path."""

    def test_zero_thrust_decelerates(self):
        """With the engines at idle airspeed falls monotonically."""
        sim = FlightSimulator(
            state=RigidBodyState.level_flight(3000.0, 150.0, throttle=0.0, fuel=20000.0)
        )
        speeds = [sim.update().true_airspeed for _ in range(300)]
        assert np.all(np.diff(speeds) < 0.0)

    def test_throttle_rate_limited(self, cruise):
        """A throttle slam moves the lever gradually."""
        start = cruise.state.controls.throttle
        snapshot = cruise.update({"throttle": 1.0})
        assert snapshot.controls.throttle == pytest.approx(start + 0.5 * FIXED_DT)

    def test_command_persists(self, cruise):
        """Channels left out keep their last command."""
        cruise.update({"throttle": 1.0})
        for _ in range(300):
            snapshot = cruise.update()
        assert snapshot.controls.throttle == pytest.approx(1.0, abs=1e-3)

    def test_out_of_range_clamped(self, cruise):
        """Commands beyond the limits are clamped."""
        for _ in range(300):
            snapshot = cruise.update({"roll": 5.0})
        assert snapshot.controls.roll == pytest.approx(0.5, abs=1e-3)

    def test_garbage_input_sanitized(self, cruise):
        """NaN and non-numeric inputs never reach the state."""
        throttle = cruise.state.controls.throttle
        snapshot = cruise.update({"throttle": math.nan, "pitch": "up", "roll": math.inf})
        assert snapshot.controls.throttle == pytest.approx(throttle)
        assert snapshot.controls.pitch == 0.0
        assert snapshot.controls.roll == 0.0
        assert cruise.state.is_finite()
        assert not snapshot.crashed

    def test_control_inputs_object(self, cruise):
        """Typed inputs work like mappings."""
        snapshot = cruise.update(ControlInputs(pitch=0.01))
        assert snapshot.controls.pitch > 0.0

    def test_runway_takeoff_roll(self):
        """Full throttle on the runway accelerates along the ground."""
        sim = FlightSimulator()
        for _ in range(300):
            snapshot = sim.update({"throttle": 1.0})
        assert snapshot.on_ground
        assert snapshot.altitude == 0.0
        assert snapshot.true_airspeed > 10.0
        assert snapshot.load_factor == pytest.approx(1.0, abs=0.05)
        assert not snapshot.crashed


# =============================================================================
# Discrete Controls
# =============================================================================


class TestDiscreteControls:
    """Test flaps, speed brakes and gear."""

    @pytest.mark.parametrize(
        "setting, detent",
        [(1.4, FlapDetent.TAKEOFF), (7, FlapDetent.LANDING), (-3.0, FlapDetent.RETRACTED),
         (FlapDetent.LANDING, FlapDetent.LANDING)],
    )
    def test_flaps(self, cruise, setting, detent):
        """Flap settings snap to a detent."""
        assert cruise.set_flaps(setting) == detent
        assert cruise.state.controls.flaps == detent

    def test_flaps_nan_ignored(self, cruise):
        """NaN leaves the flaps alone."""
        cruise.set_flaps(1)
        assert cruise.set_flaps(math.nan) == FlapDetent.TAKEOFF

    def test_flaps_add_lift(self, cruise):
        """Extending flaps raises the lift coefficient."""
        clean = cruise.diagnostics().aero.lift_coefficient
        cruise.set_flaps(FlapDetent.LANDING)
        assert cruise.diagnostics().aero.lift_coefficient > clean

    def test_air_brakes(self, cruise):
        """Speed brakes extend at half travel or more."""
        assert cruise.set_air_brakes(0.7) == 1
        assert cruise.set_air_brakes(0.2) == 0

    def test_gear_refused_on_ground(self):
        """The gear cannot be raised on the runway."""
        sim = FlightSimulator()
        assert sim.set_gear(False) is False
        assert sim.state.controls.gear_down

    def test_gear_in_flight(self, cruise):
        """Airborne the gear moves freely."""
        assert cruise.set_gear(True)
        assert cruise.state.controls.gear_down
        assert cruise.set_gear(False)
        assert not cruise.state.controls.gear_down


# =============================================================================
# Autopilot
# =============================================================================


class TestAutopilot:
    """Test the autopilot through the simulator."""

    def test_engage_without_jump(self, cruise):
        """Engaging in trim leaves the controls where they were."""
        controls = cruise.state.controls.copy()
        cruise.set_autopilot(True)
        snapshot = cruise.update()
        assert snapshot.autopilot.engaged
        assert snapshot.controls.throttle == pytest.approx(controls.throttle, abs=1e-6)
        assert snapshot.controls.pitch == pytest.approx(0.0, abs=1e-6)

    def test_altitude_capture_climbs(self, cruise):
        """A target 1000 ft up starts a climb within 10 s."""
        cruise.set_autopilot(True)
        cruise.update_autopilot_targets({"altitude": 3000.0 + 304.8})
        for _ in range(600):
            snapshot = cruise.update()
        assert snapshot.altitude > 3001.0
        assert snapshot.vertical_speed > 0.0
        assert not snapshot.crashed

    def test_heading_change_banks(self, cruise):
        """A heading target to the right rolls right."""
        cruise.update({"autopilot": True, "targets": {"heading": 30.0}})
        for _ in range(120):
            snapshot = cruise.update()
        assert snapshot.roll_deg > 0.0

    def test_engage_through_inputs(self, cruise):
        """Engage and disengage via the input mapping."""
        cruise.update({"autopilot": True})
        assert cruise.get_autopilot_status().engaged
        cruise.update({"autopilot": False})
        assert not cruise.get_autopilot_status().engaged

    def test_bad_targets_ignored(self, cruise):
        """Non-numeric targets leave the old ones."""
        cruise.set_autopilot(True)
        cruise.update_autopilot_targets({"altitude": "high", "heading": 370.0})
        targets = cruise.get_autopilot_status().targets
        assert targets.altitude == pytest.approx(3000.0)
        assert targets.heading == pytest.approx(10.0)

    def test_shares_safety_limits_with_manual(self):
        """One CommandLimits object bounds both the autopilot and manual control."""
        limits = CommandLimits(max_pitch=0.1, max_roll=0.2)
        sim = FlightSimulator.from_trim(sim_config=SimConfig(limits=limits))
        assert sim.get_autopilot_status().limits.safety is limits

        sim.set_autopilot(True)
        sim.update_autopilot_targets({"altitude": 6000.0, "heading": 120.0})
        for _ in range(120):
            snapshot = sim.update()
            assert snapshot.controls.pitch <= 0.1 + 1e-12
            assert snapshot.controls.roll <= 0.2 + 1e-12

        sim.set_autopilot(False)
        for _ in range(300):
            snapshot = sim.update({"roll": 5.0})
        assert snapshot.controls.roll == pytest.approx(0.2, abs=1e-3)

    def test_tune_pid(self, cruise):
        """Gains can be changed through the simulator."""
        assert cruise.tune_pid("altitude", kp=0.001) == PIDGains(kp=0.001, ki=0.0, kd=0.003)
        with pytest.raises(ValueError):
            cruise.tune_pid("bogus", kp=1.0)


# =============================================================================
# Reset and Initial Conditions
# =============================================================================


class TestReset:
    """Test restarting the simulation."""

    def test_reset(self, cruise):
        """reset() returns to the initial state and disengages."""
        cruise.set_autopilot(True)
        for _ in range(60):
            cruise.update({"roll": 0.3})
        cruise.reset()
        assert cruise.time == 0.0
        assert cruise.state.roll == 0.0
        assert cruise.state.altitude == pytest.approx(3000.0)
        assert not cruise.get_autopilot_status().engaged

    def test_reset_through_inputs(self, cruise):
        """A reset input restarts instead of stepping."""
        for _ in range(30):
            cruise.update()
        snapshot = cruise.update({"reset": True, "throttle": 1.0})
        assert snapshot.time == 0.0

    def test_initial_conditions_airborne(self, cruise):
        """Airborne starts are trimmed, gear up."""
        snapshot = cruise.set_initial_conditions(altitude=1000.0, airspeed=120.0, heading=90.0)
        assert snapshot.altitude == pytest.approx(1000.0)
        assert snapshot.true_airspeed == pytest.approx(120.0)
        assert snapshot.heading == pytest.approx(90.0)
        assert not snapshot.controls.gear_down
        assert 0.0 < snapshot.controls.throttle < 1.0

        for _ in range(120):
            snapshot = cruise.update()
        assert snapshot.altitude == pytest.approx(1000.0, abs=1.0)

    def test_initial_conditions_runway(self, cruise):
        """Zero altitude and speed parks on the runway."""
        snapshot = cruise.set_initial_conditions(heading=270.0)
        assert snapshot.on_ground
        assert snapshot.controls.gear_down
        assert snapshot.heading == pytest.approx(270.0)

    def test_reset_returns_to_new_initial(self, cruise):
        """reset() after new initial conditions goes back to them."""
        cruise.set_initial_conditions(altitude=1000.0, airspeed=120.0)
        for _ in range(60):
            cruise.update({"pitch": 0.05})
        cruise.reset()
        assert cruise.state.altitude == pytest.approx(1000.0)


# =============================================================================
# Crash Latch
# =============================================================================


class TestCrash:
    """Test that a crash freezes the simulation."""

    def test_hard_landing_freezes(self):
        """Hitting the runway hard latches a crash and stops time."""
        state = RigidBodyState.level_flight(1.0, 80.0)
        state.velocity = np.array([80.0, 0.0, 20.0])  # 20 m/s sink
        sim = FlightSimulator(state=state)
        for _ in range(10):
            snapshot = sim.update()
        assert snapshot.crashed
        assert snapshot.crash_reason.startswith("hard landing")

        frozen = sim.time
        sim.update()
        assert sim.time == frozen

        sim.reset()
        assert not sim.crashed


# =============================================================================
# Reporting
# =============================================================================


class TestReporting:
    """Test history, diagnostics and force hooks."""

    def test_history(self):
        """Every step is recorded when asked."""
        sim = FlightSimulator.from_trim(sim_config=SimConfig(record_history=True))
        for _ in range(30):
            sim.update()
        history = sim.get_history()
        assert len(history) == 31
        assert history.time[-1] == pytest.approx(30 * FIXED_DT)
        assert history.position.shape == (31, 3)

        df = history.to_dataframe()
        assert df.height == 31
        assert "altitude" in df.columns

    def test_history_off_by_default(self, cruise):
        """Nothing is recorded by default."""
        cruise.update()
        assert len(cruise.get_history()) == 0

    def test_diagnostics(self, cruise):
        """Diagnostics expose the force breakdown of the last step."""
        cruise.update()
        d = cruise.diagnostics()
        assert not d.on_ground
        assert d.forces.thrust[0] > 0.0
        assert d.aero.lift == pytest.approx(d.mass * G0, rel=0.01)

    def test_force_hooks(self, cruise):
        """Per-source force hooks agree with the diagnostics."""
        thrust = cruise.calculate_propulsion_forces()
        gravity = cruise.calculate_gravitational_forces()
        aero = cruise.calculate_aerodynamic_forces()
        assert_allclose(thrust, cruise.diagnostics().forces.thrust)
        assert np.linalg.norm(gravity) == pytest.approx(cruise.mass * G0)
        assert aero.lift > 0.0

    def test_snapshot_does_not_step(self, cruise):
        """Reading the state has no side effects."""
        cruise.get_aircraft_state()
        cruise.get_aircraft_state()
        assert cruise.time == 0.0
