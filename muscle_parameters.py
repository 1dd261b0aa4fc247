# Properties of a DeGroote-Fregly 2016 muscle and the constants derived from them
#---------------------------------------------------------------------------------

from dataclasses import dataclass, fields
import numpy as np

import muscle_curves as curves
from muscle_errors import ConfigurationError

EXPLICIT = 'explicit'
IMPLICIT = 'implicit'
DYNAMICS_MODES = (EXPLICIT, IMPLICIT)

# pennation angle is limited such that cos(pennation angle) >= 0.1 at the minimal fiber length
MAX_PENNATION_ANGLE = np.arccos(0.1)


@dataclass(frozen=True)
class MuscleParameters:
    max_isometric_force: float = 1000.0  # [N]
    optimal_fiber_length: float = 0.1  # [m]
    tendon_slack_length: float = 0.2  # [m]
    pennation_angle_at_optimal: float = 0.0  # [rad]
    max_contraction_velocity: float = 10.0  # [optimal fiber lengths / s]
    activation_time_constant: float = 0.015  # [s]
    deactivation_time_constant: float = 0.060  # [s]
    default_activation: float = 0.5
    default_normalized_tendon_force: float = 0.5
    active_force_width_scale: float = 1.0
    fiber_damping: float = 0.0
    passive_fiber_strain_at_one_norm_force: float = 0.6
    tendon_strain_at_one_norm_force: float = 0.049
    ignore_tendon_compliance: bool = False
    ignore_passive_fiber_force: bool = False
    ignore_activation_dynamics: bool = False
    tendon_compliance_dynamics_mode: str = EXPLICIT

    @classmethod
    def property_names(cls):
        return [f.name for f in fields(cls)]


@dataclass(frozen=True)
class DerivedConstants:
    fiber_width: float
    square_fiber_width: float
    max_contraction_velocity_in_meters_per_second: float
    kT: float
    min_fiber_length: float
    max_fiber_length: float
    is_tendon_dynamics_explicit: bool


def _require(condition, name, value, requirement):
    if not condition:
        raise ConfigurationError(name, value, requirement)


def validate_parameters(p):
    _require(p.max_isometric_force >= 0, 'max_isometric_force',
             p.max_isometric_force, 'must be non-negative')
    _require(p.optimal_fiber_length > 0, 'optimal_fiber_length',
             p.optimal_fiber_length, 'must be positive')
    _require(p.tendon_slack_length > 0, 'tendon_slack_length',
             p.tendon_slack_length, 'must be positive')
    _require(0 <= p.pennation_angle_at_optimal < 0.5 * np.pi,
             'pennation_angle_at_optimal', p.pennation_angle_at_optimal,
             'must be in [0, pi/2)')
    _require(p.max_contraction_velocity > 0, 'max_contraction_velocity',
             p.max_contraction_velocity, 'must be positive')
    _require(p.activation_time_constant > 0, 'activation_time_constant',
             p.activation_time_constant, 'must be positive')
    _require(p.deactivation_time_constant > 0, 'deactivation_time_constant',
             p.deactivation_time_constant, 'must be positive')
    _require(p.active_force_width_scale > 0, 'active_force_width_scale',
             p.active_force_width_scale, 'must be positive')
    _require(p.fiber_damping >= 0, 'fiber_damping', p.fiber_damping,
             'must be non-negative')
    _require(p.passive_fiber_strain_at_one_norm_force > 0,
             'passive_fiber_strain_at_one_norm_force',
             p.passive_fiber_strain_at_one_norm_force, 'must be positive')
    _require(p.tendon_strain_at_one_norm_force > 0,
             'tendon_strain_at_one_norm_force',
             p.tendon_strain_at_one_norm_force, 'must be positive')
    _require(curves.MIN_NORM_TENDON_FORCE <= p.default_normalized_tendon_force
             <= curves.MAX_NORM_TENDON_FORCE, 'default_normalized_tendon_force',
             p.default_normalized_tendon_force,
             f'must be in [{curves.MIN_NORM_TENDON_FORCE}, '
             f'{curves.MAX_NORM_TENDON_FORCE}]')
    _require(p.tendon_compliance_dynamics_mode in DYNAMICS_MODES,
             'tendon_compliance_dynamics_mode', p.tendon_compliance_dynamics_mode,
             f'must be one of {DYNAMICS_MODES}')


def compute_derived_constants(p):
    validate_parameters(p)
    fiber_width = p.optimal_fiber_length * np.sin(p.pennation_angle_at_optimal)
    min_fiber_length = max(curves.MIN_NORM_FIBER_LENGTH * p.optimal_fiber_length,
                           fiber_width / np.sin(MAX_PENNATION_ANGLE))
    return DerivedConstants(
        fiber_width=fiber_width,
        square_fiber_width=fiber_width ** 2,
        max_contraction_velocity_in_meters_per_second=
            p.max_contraction_velocity * p.optimal_fiber_length,
        kT=curves.calc_tendon_stiffness_parameter(p.tendon_strain_at_one_norm_force),
        min_fiber_length=min_fiber_length,
        max_fiber_length=curves.MAX_NORM_FIBER_LENGTH * p.optimal_fiber_length,
        is_tendon_dynamics_explicit=p.tendon_compliance_dynamics_mode == EXPLICIT)
