# test the DeGroote-Fregly 2016 muscle model
#--------------------------------------------
import numpy as np
import pytest

import muscle_curves as curves
from conftest import FMo, lMo, make_muscle, isometric_muscle_tendon_length
from degroote2016_muscle_model import DeGrooteFregly2016Muscle
from fiber_state_estimator import EstimatorStatus
from muscle_errors import ConfigurationError, ModeMisuseError


def set_state(muscle, activation, lmt, vmt, norm_tendon_force):
    muscle.set_activation(activation)
    muscle.set_excitation(activation)
    muscle.set_muscle_tendon_length(lmt)
    muscle.set_muscle_tendon_velocity(vmt)
    muscle.set_normalized_tendon_force(norm_tendon_force)


# isometric equilibrium at optimal fiber length (explicit tendon dynamics)
#--------------------------------------------------------------------------
def test_isometric_equilibrium_explicit():
    muscle = make_muscle(pennation_angle_at_optimal=0.0)
    set_state(muscle, 1.0, isometric_muscle_tendon_length(muscle), 0.0, 0.5)

    result = muscle.compute_initial_fiber_equilibrium()
    assert result.status == EstimatorStatus.CONVERGED

    assert muscle.get_norm_fiber_length() == pytest.approx(1.0, abs=1e-6)
    expected_force = FMo * (muscle.calc_active_force_length_multiplier(1.0) +
                            muscle.calc_passive_force_multiplier(1.0))
    assert muscle.get_tendon_force() == pytest.approx(expected_force, rel=1e-6)
    assert muscle.compute_actuation() == pytest.approx(1.018 * FMo, rel=1e-3)
    assert muscle.get_norm_fiber_velocity() == pytest.approx(0.0, abs=1e-8)

    derivatives = muscle.compute_state_variable_derivatives()
    assert derivatives['normalized_tendon_force'] == pytest.approx(0.0, abs=1e-6)
    assert derivatives['activation'] == 0.0


def test_explicit_fiber_force_matches_tendon_force(muscle):
    # the fiber velocity follows from the tendon force, so the equilibrium
    # holds and the power of fiber and tendon add up to the muscle power
    set_state(muscle, 0.7, 0.31, 0.1, 0.6)
    mdi = muscle.get_dynamics_info()
    assert mdi.equilibrium_residual == pytest.approx(0.0, abs=1e-8)
    assert mdi.tendon_force == pytest.approx(0.6 * FMo)
    assert mdi.fiber_active_power + mdi.fiber_passive_power + mdi.tendon_power == \
           pytest.approx(mdi.muscle_power, rel=1e-9)


def test_force_components(muscle):
    set_state(muscle, 0.7, 0.31, 0.1, 0.6)
    assert muscle.get_active_fiber_force() + muscle.get_passive_fiber_elastic_force() + \
           muscle.get_passive_fiber_damping_force() == \
           pytest.approx(muscle.get_fiber_force())
    assert muscle.get_passive_fiber_damping_force() == 0.0
    cos_pennation = np.cos(muscle.get_pennation_angle())
    assert muscle.get_active_fiber_force_along_tendon() == \
           pytest.approx(muscle.get_active_fiber_force() * cos_pennation)
    assert muscle.get_passive_fiber_elastic_force_along_tendon() == \
           pytest.approx(muscle.get_passive_fiber_elastic_force() * cos_pennation)


def test_fixed_width_pennation(muscle):
    set_state(muscle, 0.7, 0.31, 0.1, 0.6)
    mli = muscle.get_length_info()
    fvi = muscle.get_velocity_info(mli)
    assert mli.fiber_length * np.sin(mli.pennation_angle) == \
           pytest.approx(muscle.get_fiber_width())
    assert mli.fiber_length_along_tendon + mli.tendon_length == pytest.approx(0.31)
    assert fvi.fiber_velocity_along_tendon == \
           pytest.approx(fvi.fiber_velocity / mli.cos_pennation_angle)
    assert fvi.fiber_velocity_along_tendon + fvi.tendon_velocity == pytest.approx(0.1)


def test_fiber_damping():
    muscle = make_muscle(fiber_damping=0.1)
    set_state(muscle, 0.7, 0.31, 0.1, 0.6)
    mdi = muscle.get_dynamics_info()
    fvi = muscle.get_velocity_info()
    assert mdi.passive_fiber_damping_force == \
           pytest.approx(FMo * 0.1 * fvi.norm_fiber_velocity)
    assert mdi.equilibrium_residual == pytest.approx(0.0, abs=1e-6)


def test_potential_energy(muscle):
    set_state(muscle, 0.7, 0.31, 0.0, 0.0)
    pei = muscle.get_potential_energy_info()
    # the tendon is at its slack length
    assert pei.tendon_potential_energy == pytest.approx(0.0, abs=1e-12)
    assert pei.fiber_potential_energy == pytest.approx(
        curves.calc_passive_force_multiplier_integral(muscle.get_norm_fiber_length()) *
        lMo * FMo)
    assert muscle.compute_potential_energy() == pytest.approx(
        pei.fiber_potential_energy + pei.tendon_potential_energy)

    muscle.set_normalized_tendon_force(1.0)
    assert muscle.get_potential_energy_info().tendon_potential_energy > 0


def test_inextensible_tendon_active_fiber_force():
    muscle = make_muscle(pennation_angle_at_optimal=0.0)
    muscle.set_muscle_tendon_length(lMo + muscle.get_tendon_slack_length())
    muscle.set_muscle_tendon_velocity(0.0)
    assert muscle.calc_inextensible_tendon_active_fiber_force(0.6) == \
           pytest.approx(0.6 * FMo * muscle.calc_active_force_length_multiplier(1.0))


# implicit tendon dynamics
#--------------------------
def test_implicit_residual_grows_with_tendon_force_derivative():
    muscle = make_muscle(pennation_angle_at_optimal=0.0,
                         tendon_compliance_dynamics_mode='implicit')
    set_state(muscle, 1.0, isometric_muscle_tendon_length(muscle), 0.0, 0.5)
    muscle.compute_initial_fiber_equilibrium()
    assert muscle.get_implicit_residual_normalized_tendon_force() == \
           pytest.approx(0.0, abs=1e-6)

    # tendon lengthening, fiber shortening: lower fiber force than tendon force
    muscle.set_normalized_tendon_force_derivative(0.1)
    residual_1 = muscle.get_implicit_residual_normalized_tendon_force()
    muscle.set_normalized_tendon_force_derivative(0.2)
    residual_2 = muscle.get_implicit_residual_normalized_tendon_force()
    assert residual_1 > 0
    assert residual_2 / residual_1 == pytest.approx(2.0, rel=0.02)
    assert muscle.get_normalized_tendon_force_derivative() == 0.2


def test_initial_equilibrium_resets_tendon_force_derivative():
    muscle = make_muscle(pennation_angle_at_optimal=0.0,
                         tendon_compliance_dynamics_mode='implicit')
    set_state(muscle, 1.0, isometric_muscle_tendon_length(muscle), 0.0, 0.5)
    muscle.set_normalized_tendon_force_derivative(2.0)
    muscle.compute_initial_fiber_equilibrium()
    assert muscle.get_normalized_tendon_force_derivative() == 0.0
    assert muscle.get_implicit_residual_normalized_tendon_force() == \
           pytest.approx(0.0, abs=1e-6)


def test_linearized_equilibrium_residual_derivative(implicit_muscle):
    set_state(implicit_muscle, 0.7, 0.31, 0.05, 0.6)
    implicit_muscle.set_normalized_tendon_force_derivative(0.3)
    mli = implicit_muscle.get_length_info()
    fvi = implicit_muscle.get_velocity_info(mli)
    mdi = implicit_muscle.get_dynamics_info(mli, fvi)
    expected = mdi.fiber_stiffness_along_tendon * fvi.fiber_velocity_along_tendon - \
               mdi.tendon_stiffness * (0.05 - fvi.fiber_velocity_along_tendon)
    assert implicit_muscle.get_linearized_equilibrium_residual_derivative() == \
           pytest.approx(expected)
    assert implicit_muscle.get_implicit_residual_normalized_tendon_force() == \
           implicit_muscle.get_equilibrium_residual()


# zero activation (explicit tendon dynamics)
#--------------------------------------------
def test_zero_activation_explicit(muscle):
    set_state(muscle, 0.0, 0.31, 0.0, 0.3)
    fvi = muscle.get_velocity_info()
    assert fvi.norm_fiber_velocity == pytest.approx(0.0, abs=1e-9)
    assert np.isfinite(muscle.get_tendon_force())
    derivatives = muscle.compute_state_variable_derivatives()
    assert derivatives['normalized_tendon_force'] == pytest.approx(0.0, abs=1e-9)
    assert derivatives['activation'] == 0.0


def test_force_velocity_multiplier_stays_on_curve(muscle):
    # tendon force far above the maximal eccentric fiber force
    set_state(muscle, 0.1, 0.31, 0.0, 1.0)
    fvi = muscle.get_velocity_info()
    assert fvi.force_velocity_multiplier == \
           pytest.approx(curves.MAX_FORCE_VELOCITY_MULTIPLIER)
    assert fvi.norm_fiber_velocity == pytest.approx(1.0, abs=1e-9)
    # tendon force below the passive fiber force
    set_state(muscle, 0.5, 0.36, 0.0, 0.0)
    fvi = muscle.get_velocity_info()
    assert fvi.force_velocity_multiplier == 0.0
    assert fvi.norm_fiber_velocity == pytest.approx(-1.0, abs=1e-6)


def test_zero_activation_with_fiber_damping():
    muscle = make_muscle(fiber_damping=0.1)
    set_state(muscle, 0.0, 0.31, 0.0, 0.3)
    mdi = muscle.get_dynamics_info()
    assert np.isfinite(muscle.get_norm_fiber_velocity())
    assert mdi.equilibrium_residual == pytest.approx(0.0, abs=1e-6)


def test_series_stiffness(muscle):
    set_state(muscle, 0.7, 0.31, 0.0, 0.6)
    mdi = muscle.get_dynamics_info()
    assert 1.0 / mdi.muscle_stiffness == pytest.approx(
        1.0 / mdi.tendon_stiffness + 1.0 / mdi.fiber_stiffness_along_tendon)


# modes
#-------
def test_mode_misuse(muscle, implicit_muscle):
    with pytest.raises(ModeMisuseError):
        muscle.set_normalized_tendon_force_derivative(0.1)
    with pytest.raises(ModeMisuseError):
        muscle.get_implicit_residual_normalized_tendon_force()
    with pytest.raises(ModeMisuseError):
        implicit_muscle.compute_state_variable_derivatives()
    assert not muscle.get_implicit_enabled_normalized_tendon_force()
    assert implicit_muscle.get_implicit_enabled_normalized_tendon_force()


def test_rigid_tendon(rigid_muscle):
    set_state(rigid_muscle, 0.7, 0.3, 0.1, 0.6)
    assert rigid_muscle.get_state_variable_names() == ['activation']
    assert rigid_muscle.get_tendon_length() == pytest.approx(
        rigid_muscle.get_tendon_slack_length())

    mdi = rigid_muscle.get_dynamics_info()
    assert mdi.tendon_stiffness == np.inf
    assert mdi.muscle_stiffness == mdi.fiber_stiffness_along_tendon
    assert mdi.equilibrium_residual == 0.0
    assert mdi.linearized_equilibrium_residual_derivative == 0.0
    assert rigid_muscle.get_fiber_velocity() == \
           pytest.approx(0.1 * np.cos(rigid_muscle.get_pennation_angle()))

    # tendon force is not a state
    rigid_muscle.set_normalized_tendon_force(3.0)
    assert rigid_muscle.get_normalized_tendon_force() == \
           pytest.approx(mdi.tendon_force / FMo)
    assert rigid_muscle.get_normalized_tendon_force_derivative() == 0.0
    assert rigid_muscle.compute_initial_fiber_equilibrium() is None
    with pytest.raises(ModeMisuseError):
        rigid_muscle.get_implicit_residual_normalized_tendon_force()


def test_ignore_activation_dynamics():
    muscle = make_muscle(ignore_activation_dynamics=True)
    assert muscle.get_state_variable_names() == ['normalized_tendon_force']
    muscle.set_excitation(0.3)
    assert muscle.get_activation() == 0.3
    assert muscle.compute_activation_derivative() == 0.0
    assert 'activation' not in muscle.compute_state_variable_derivatives()


def test_ignore_passive_fiber_force():
    muscle = make_muscle(ignore_passive_fiber_force=True)
    set_state(muscle, 1.0, 0.36, 0.0, 0.2)
    assert muscle.get_norm_fiber_length() > 1.2
    assert muscle.get_passive_fiber_elastic_force() == 0.0
    assert muscle.compute_potential_energy() == pytest.approx(
        muscle.get_potential_energy_info().tendon_potential_energy)


def test_state_names(muscle):
    assert muscle.get_state_variable_names() == ['activation', 'normalized_tendon_force']
    assert DeGrooteFregly2016Muscle.get_implicit_dynamics_derivative_name() == \
           'implicitderiv_normalized_tendon_force'
    assert DeGrooteFregly2016Muscle.get_implicit_dynamics_residual_name() == \
           'implicitresidual_normalized_tendon_force'


# normalized tendon force bounds
#--------------------------------
def test_normalized_tendon_force_is_clamped(muscle):
    assert muscle.get_bounds_normalized_tendon_force() == (0.0, 5.0)
    muscle.set_normalized_tendon_force(7.0)
    assert muscle.get_normalized_tendon_force() == 5.0
    muscle.set_normalized_tendon_force(-1.0)
    assert muscle.get_normalized_tendon_force() == 0.0
    muscle.set_normalized_tendon_force(1.5)
    assert muscle.get_normalized_tendon_force() == 1.5


# properties
#------------
@pytest.mark.parametrize('name, value', [
    ('activation_time_constant', 0.0),
    ('deactivation_time_constant', -0.01),
    ('active_force_width_scale', -1.0),
    ('fiber_damping', -0.1),
    ('passive_fiber_strain_at_one_norm_force', 0.0),
    ('tendon_strain_at_one_norm_force', 0.0),
    ('default_normalized_tendon_force', 6.0),
    ('tendon_compliance_dynamics_mode', 'semi-implicit'),
    ('optimal_fiber_length', 0.0),
    ('pennation_angle_at_optimal', 0.5 * np.pi),
])
def test_invalid_properties(name, value):
    with pytest.raises(ConfigurationError) as excinfo:
        make_muscle(**{name: value})
    assert excinfo.value.property_name == name


def test_invalid_property_leaves_muscle_unchanged(muscle):
    with pytest.raises(ValueError):
        muscle.set_property('max_contraction_velocity', -1.0)
    assert muscle.get_property('max_contraction_velocity') == 10


def test_unknown_property(muscle):
    with pytest.raises(ConfigurationError) as excinfo:
        muscle.set_property('kT', 30.0)
    assert excinfo.value.property_name == 'kT'
    assert muscle.get_kT() == pytest.approx(curves.calc_tendon_stiffness_parameter(0.049))


def test_set_properties_recomputes_constants(muscle):
    muscle.set_tendon_strain_at_one_norm_force(0.1)
    assert muscle.get_kT() == pytest.approx(curves.calc_tendon_stiffness_parameter(0.1))
    muscle.set_optimal_pennation_angle(0.2)
    assert muscle.get_fiber_width() == pytest.approx(lMo * np.sin(0.2))
    muscle.set_property('tendon_compliance_dynamics_mode', 'implicit')
    assert muscle.controller.mode == 'implicit'


def test_set_properties_from_state(muscle):
    muscle.set_activation(0.3)
    muscle.set_normalized_tendon_force(1.2)
    muscle.set_properties_from_state()
    muscle.init_state()
    assert muscle.get_activation() == 0.3
    assert muscle.get_normalized_tendon_force() == 1.2
