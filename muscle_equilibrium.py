# Muscle-tendon force equilibrium of the DeGroote-Fregly 2016 muscle
#--------------------------------------------------------------------

# Fixed width pennation model: the fiber width
#       fiber_width = optimal_fiber_length * sin(pennation_angle_at_optimal)
# is constant, such that
#       fiber_length**2 = fiber_length_along_tendon**2 + fiber_width**2
# The state of the tendon is the normalized tendon force, the fiber length
# follows from the inverse of the tendon force-length curve.
#
# Stiffness and partial derivatives follow Millard et al. (2013), Flexing
# computational muscle: modeling and simulation of musculotendon dynamics.

from dataclasses import dataclass
import logging
import numpy as np
from scipy.optimize import brentq

import muscle_curves as curves

logger = logging.getLogger(__name__)


@dataclass
class LengthInfo:
    norm_tendon_length: float
    tendon_strain: float
    tendon_length: float
    fiber_length_along_tendon: float
    fiber_length: float
    norm_fiber_length: float
    cos_pennation_angle: float
    sin_pennation_angle: float
    passive_force_length_multiplier: float
    active_force_length_multiplier: float

    @property
    def pennation_angle(self):
        return np.arcsin(self.sin_pennation_angle)


@dataclass
class VelocityInfo:
    fiber_velocity: float
    fiber_velocity_along_tendon: float
    norm_fiber_velocity: float
    tendon_velocity: float
    norm_tendon_velocity: float
    force_velocity_multiplier: float
    pennation_angular_velocity: float


@dataclass
class DynamicsInfo:
    activation: float
    fiber_force: float
    active_fiber_force: float
    passive_fiber_force: float
    passive_fiber_elastic_force: float
    passive_fiber_damping_force: float
    norm_fiber_force: float
    fiber_force_along_tendon: float
    tendon_force: float
    norm_tendon_force: float
    fiber_stiffness: float
    fiber_stiffness_along_tendon: float
    tendon_stiffness: float
    muscle_stiffness: float
    partial_pennation_angle_partial_fiber_length: float
    partial_fiber_force_along_tendon_partial_fiber_length: float
    partial_tendon_force_partial_fiber_length: float
    fiber_active_power: float
    fiber_passive_power: float
    tendon_power: float
    muscle_power: float
    equilibrium_residual: float
    linearized_equilibrium_residual_derivative: float
    cos_pennation_angle: float

    @property
    def active_fiber_force_along_tendon(self):
        return self.active_fiber_force * self.cos_pennation_angle

    @property
    def passive_fiber_elastic_force_along_tendon(self):
        return self.passive_fiber_elastic_force * self.cos_pennation_angle

    @property
    def passive_fiber_damping_force_along_tendon(self):
        return self.passive_fiber_damping_force * self.cos_pennation_angle


@dataclass
class PotentialEnergyInfo:
    fiber_potential_energy: float
    tendon_potential_energy: float
    muscle_potential_energy: float


class EquilibriumModel:
    def __init__(self, parameters, constants):
        self.parameters = parameters
        self.constants = constants

    # curves with the properties of this muscle
    #-------------------------------------------

    def active_force_length_multiplier(self, norm_fiber_length):
        return curves.calc_active_force_length_multiplier(
            norm_fiber_length, self.parameters.active_force_width_scale)

    def active_force_length_multiplier_derivative(self, norm_fiber_length):
        return curves.calc_active_force_length_multiplier_derivative(
            norm_fiber_length, self.parameters.active_force_width_scale)

    def passive_force_multiplier(self, norm_fiber_length):
        return curves.calc_passive_force_multiplier(
            norm_fiber_length, self.parameters.passive_fiber_strain_at_one_norm_force,
            self.parameters.ignore_passive_fiber_force)

    def passive_force_multiplier_derivative(self, norm_fiber_length):
        return curves.calc_passive_force_multiplier_derivative(
            norm_fiber_length, self.parameters.passive_fiber_strain_at_one_norm_force,
            self.parameters.ignore_passive_fiber_force)

    def passive_force_multiplier_integral(self, norm_fiber_length):
        return curves.calc_passive_force_multiplier_integral(
            norm_fiber_length, self.parameters.passive_fiber_strain_at_one_norm_force,
            self.parameters.ignore_passive_fiber_force)

    def tendon_force_multiplier(self, norm_tendon_length):
        return curves.calc_tendon_force_multiplier(norm_tendon_length, self.constants.kT)

    def tendon_force_multiplier_derivative(self, norm_tendon_length):
        return curves.calc_tendon_force_multiplier_derivative(norm_tendon_length,
                                                              self.constants.kT)

    def tendon_force_multiplier_integral(self, norm_tendon_length):
        return curves.calc_tendon_force_multiplier_integral(norm_tendon_length,
                                                            self.constants.kT)

    def tendon_force_length_inverse_curve(self, norm_tendon_force):
        return curves.calc_tendon_force_length_inverse_curve(norm_tendon_force,
                                                             self.constants.kT)

    def tendon_force_length_inverse_curve_derivative(self, norm_tendon_force_derivative,
                                                     norm_tendon_length):
        return curves.calc_tendon_force_length_inverse_curve_derivative(
            norm_tendon_force_derivative, norm_tendon_length, self.constants.kT)

    # forces and stiffness
    #---------------------

    def calc_fiber_force(self, activation, active_force_length_multiplier,
                         force_velocity_multiplier, norm_passive_fiber_force,
                         norm_fiber_velocity):
        # returns active, conservative passive, non-conservative passive and total fiber force
        fmax = self.parameters.max_isometric_force
        active_fiber_force = fmax * (activation * active_force_length_multiplier *
                                     force_velocity_multiplier)
        con_passive_fiber_force = fmax * norm_passive_fiber_force
        non_con_passive_fiber_force = fmax * self.parameters.fiber_damping * \
                                      norm_fiber_velocity
        total_fiber_force = active_fiber_force + con_passive_fiber_force + \
                            non_con_passive_fiber_force
        return (active_fiber_force, con_passive_fiber_force,
                non_con_passive_fiber_force, total_fiber_force)

    def calc_fiber_stiffness(self, activation, norm_fiber_length,
                             force_velocity_multiplier):
        # d_fiber_force / d_fiber_length
        dlmtilde_dlm = 1.0 / self.parameters.optimal_fiber_length
        dfact_dlm = dlmtilde_dlm * \
                    self.active_force_length_multiplier_derivative(norm_fiber_length)
        dfpas_dlm = dlmtilde_dlm * \
                    self.passive_force_multiplier_derivative(norm_fiber_length)
        return self.parameters.max_isometric_force * \
               (activation * dfact_dlm * force_velocity_multiplier + dfpas_dlm)

    def calc_tendon_stiffness(self, norm_tendon_length):
        if self.parameters.ignore_tendon_compliance:
            return np.inf
        return (self.parameters.max_isometric_force / self.parameters.tendon_slack_length) * \
               self.tendon_force_multiplier_derivative(norm_tendon_length)

    def calc_muscle_stiffness(self, tendon_stiffness, fiber_stiffness_along_tendon):
        # fiber and tendon are springs in series
        if self.parameters.ignore_tendon_compliance:
            return fiber_stiffness_along_tendon
        return (fiber_stiffness_along_tendon * tendon_stiffness) / \
               (fiber_stiffness_along_tendon + tendon_stiffness)

    def calc_partial_pennation_angle_partial_fiber_length(self, fiber_length):
        # pennation_angle = asin(fiber_width / fiber_length)
        fiber_width = self.constants.fiber_width
        return (-fiber_width / fiber_length ** 2) / \
               np.sqrt(1.0 - (fiber_width / fiber_length) ** 2)

    def calc_partial_fiber_force_along_tendon_partial_fiber_length(
            self, fiber_force, fiber_stiffness, sin_pennation_angle,
            cos_pennation_angle, partial_pennation_angle_partial_fiber_length):
        # d/d_fiber_length (fiber_force * cos_pennation_angle)
        partial_cos_partial_fiber_length = -sin_pennation_angle * \
                                           partial_pennation_angle_partial_fiber_length
        return fiber_stiffness * cos_pennation_angle + \
               fiber_force * partial_cos_partial_fiber_length

    def calc_fiber_stiffness_along_tendon(
            self, fiber_length, partial_fiber_force_along_tendon_partial_fiber_length,
            sin_pennation_angle, cos_pennation_angle,
            partial_pennation_angle_partial_fiber_length):
        # d_fiber_force_along_tendon / d_fiber_length_along_tendon
        partial_fiber_length_along_tendon_partial_fiber_length = \
            cos_pennation_angle - fiber_length * sin_pennation_angle * \
            partial_pennation_angle_partial_fiber_length
        return partial_fiber_force_along_tendon_partial_fiber_length / \
               partial_fiber_length_along_tendon_partial_fiber_length

    def calc_partial_tendon_length_partial_fiber_length(
            self, fiber_length, sin_pennation_angle, cos_pennation_angle,
            partial_pennation_angle_partial_fiber_length):
        return fiber_length * sin_pennation_angle * \
               partial_pennation_angle_partial_fiber_length - cos_pennation_angle

    def calc_partial_tendon_force_partial_fiber_length(
            self, tendon_stiffness, fiber_length, sin_pennation_angle,
            cos_pennation_angle):
        partial_pennation_angle_partial_fiber_length = \
            self.calc_partial_pennation_angle_partial_fiber_length(fiber_length)
        partial_tendon_length_partial_fiber_length = \
            self.calc_partial_tendon_length_partial_fiber_length(
                fiber_length, sin_pennation_angle, cos_pennation_angle,
                partial_pennation_angle_partial_fiber_length)
        return tendon_stiffness * partial_tendon_length_partial_fiber_length

    # residuals
    #----------

    def calc_equilibrium_residual(self, tendon_force, fiber_force_along_tendon):
        return tendon_force - fiber_force_along_tendon

    def calc_linearized_equilibrium_residual_derivative(
            self, muscle_tendon_velocity, fiber_velocity_along_tendon,
            tendon_stiffness, fiber_stiffness_along_tendon):
        # Millard et al. 2013, equation A6
        if self.parameters.ignore_tendon_compliance:
            # tendon force equals fiber force along tendon at all times
            return 0.0
        return fiber_stiffness_along_tendon * fiber_velocity_along_tendon - \
               tendon_stiffness * (muscle_tendon_velocity - fiber_velocity_along_tendon)

    # length, velocity and dynamics info
    #------------------------------------

    def calc_length_info(self, muscle_tendon_length, norm_tendon_force,
                         ignore_tendon_compliance=None):
        if ignore_tendon_compliance is None:
            ignore_tendon_compliance = self.parameters.ignore_tendon_compliance
        if ignore_tendon_compliance:
            norm_tendon_length = 1.0
        else:
            norm_tendon_length = self.tendon_force_length_inverse_curve(norm_tendon_force)
        tendon_length = self.parameters.tendon_slack_length * norm_tendon_length
        fiber_length_along_tendon = muscle_tendon_length - tendon_length
        fiber_length = np.sqrt(fiber_length_along_tendon ** 2 +
                               self.constants.square_fiber_width)
        norm_fiber_length = fiber_length / self.parameters.optimal_fiber_length
        return LengthInfo(
            norm_tendon_length=norm_tendon_length,
            tendon_strain=norm_tendon_length - 1.0,
            tendon_length=tendon_length,
            fiber_length_along_tendon=fiber_length_along_tendon,
            fiber_length=fiber_length,
            norm_fiber_length=norm_fiber_length,
            cos_pennation_angle=fiber_length_along_tendon / fiber_length,
            sin_pennation_angle=self.constants.fiber_width / fiber_length,
            passive_force_length_multiplier=self.passive_force_multiplier(norm_fiber_length),
            active_force_length_multiplier=self.active_force_length_multiplier(norm_fiber_length))

    def _solve_damped_norm_fiber_velocity(self, activation, length_info, norm_fiber_force):
        # a * fl * fv(v) + fpas + damping * v = norm_fiber_force, monotonically increasing in v
        a_fl = activation * length_info.active_force_length_multiplier
        damping = self.parameters.fiber_damping

        def fiber_force_error(v):
            return a_fl * curves.calc_force_velocity_multiplier(v) + \
                   length_info.passive_force_length_multiplier + damping * v - \
                   norm_fiber_force

        lower, upper = -1.0, 1.0
        while fiber_force_error(lower) > 0:
            lower = 2.0 * lower
        while fiber_force_error(upper) < 0:
            upper = 2.0 * upper
        return brentq(fiber_force_error, lower, upper, xtol=1e-14)

    def _calc_explicit_force_velocity_multiplier(self, activation, length_info,
                                                 norm_fiber_force):
        # the multiplier is kept within the range of the force-velocity curve
        a_fl = activation * length_info.active_force_length_multiplier
        if a_fl <= np.finfo(float).eps:
            # no active force: the fiber velocity is undetermined, take it isometric
            logger.debug('no active fiber force (activation %s), fiber velocity set to 0',
                         activation)
            return 1.0
        force_velocity_multiplier = \
            (norm_fiber_force - length_info.passive_force_length_multiplier) / a_fl
        clipped = min(max(force_velocity_multiplier, 0.0),
                      curves.MAX_FORCE_VELOCITY_MULTIPLIER)
        if clipped != force_velocity_multiplier:
            logger.debug('force-velocity multiplier %s clipped to %s',
                         force_velocity_multiplier, clipped)
        return clipped

    def calc_velocity_info(self, muscle_tendon_velocity, activation, length_info,
                           norm_tendon_force, norm_tendon_force_derivative=0.0,
                           ignore_tendon_compliance=None, tendon_dynamics_explicit=None):
        if ignore_tendon_compliance is None:
            ignore_tendon_compliance = self.parameters.ignore_tendon_compliance
        if tendon_dynamics_explicit is None:
            tendon_dynamics_explicit = self.constants.is_tendon_dynamics_explicit
        mli = length_info
        vmax = self.constants.max_contraction_velocity_in_meters_per_second

        if tendon_dynamics_explicit and not ignore_tendon_compliance:
            # fiber velocity from the force-velocity curve, given the tendon force
            norm_fiber_force = norm_tendon_force / mli.cos_pennation_angle
            if self.parameters.fiber_damping > 0:
                norm_fiber_velocity = self._solve_damped_norm_fiber_velocity(
                    activation, mli, norm_fiber_force)
                force_velocity_multiplier = \
                    curves.calc_force_velocity_multiplier(norm_fiber_velocity)
            else:
                force_velocity_multiplier = self._calc_explicit_force_velocity_multiplier(
                    activation, mli, norm_fiber_force)
                norm_fiber_velocity = \
                    curves.calc_force_velocity_inverse_curve(force_velocity_multiplier)
            fiber_velocity = norm_fiber_velocity * vmax
            # constant fiber width: divide by cos(pennation angle)
            fiber_velocity_along_tendon = fiber_velocity / mli.cos_pennation_angle
            tendon_velocity = muscle_tendon_velocity - fiber_velocity_along_tendon
            norm_tendon_velocity = tendon_velocity / self.parameters.tendon_slack_length
        else:
            if ignore_tendon_compliance:
                norm_tendon_velocity = 0.0
                tendon_velocity = 0.0
            else:
                # tendon velocity from the given time derivative of the tendon force
                norm_tendon_velocity = self.tendon_force_length_inverse_curve_derivative(
                    norm_tendon_force_derivative, mli.norm_tendon_length)
                tendon_velocity = self.parameters.tendon_slack_length * norm_tendon_velocity
            fiber_velocity_along_tendon = muscle_tendon_velocity - tendon_velocity
            fiber_velocity = fiber_velocity_along_tendon * mli.cos_pennation_angle
            norm_fiber_velocity = fiber_velocity / vmax
            force_velocity_multiplier = \
                curves.calc_force_velocity_multiplier(norm_fiber_velocity)

        tan_pennation_angle = self.constants.fiber_width / mli.fiber_length_along_tendon
        pennation_angular_velocity = -fiber_velocity / mli.fiber_length * tan_pennation_angle

        return VelocityInfo(
            fiber_velocity=fiber_velocity,
            fiber_velocity_along_tendon=fiber_velocity_along_tendon,
            norm_fiber_velocity=norm_fiber_velocity,
            tendon_velocity=tendon_velocity,
            norm_tendon_velocity=norm_tendon_velocity,
            force_velocity_multiplier=force_velocity_multiplier,
            pennation_angular_velocity=pennation_angular_velocity)

    def calc_dynamics_info(self, activation, muscle_tendon_velocity, length_info,
                           velocity_info, norm_tendon_force,
                           ignore_tendon_compliance=None):
        if ignore_tendon_compliance is None:
            ignore_tendon_compliance = self.parameters.ignore_tendon_compliance
        mli = length_info
        fvi = velocity_info
        fmax = self.parameters.max_isometric_force

        active_fiber_force, con_passive_fiber_force, non_con_passive_fiber_force, \
            fiber_force = self.calc_fiber_force(
                activation, mli.active_force_length_multiplier,
                fvi.force_velocity_multiplier, mli.passive_force_length_multiplier,
                fvi.norm_fiber_velocity)
        norm_fiber_force = fiber_force / fmax
        fiber_force_along_tendon = fiber_force * mli.cos_pennation_angle

        if ignore_tendon_compliance:
            norm_tendon_force = norm_fiber_force * mli.cos_pennation_angle
            tendon_force = fiber_force_along_tendon
        else:
            tendon_force = fmax * norm_tendon_force

        # stiffness
        fiber_stiffness = self.calc_fiber_stiffness(activation, mli.norm_fiber_length,
                                                    fvi.force_velocity_multiplier)
        dalpha_dlm = self.calc_partial_pennation_angle_partial_fiber_length(mli.fiber_length)
        dfmat_dlm = self.calc_partial_fiber_force_along_tendon_partial_fiber_length(
            fiber_force, fiber_stiffness, mli.sin_pennation_angle,
            mli.cos_pennation_angle, dalpha_dlm)
        fiber_stiffness_along_tendon = self.calc_fiber_stiffness_along_tendon(
            mli.fiber_length, dfmat_dlm, mli.sin_pennation_angle,
            mli.cos_pennation_angle, dalpha_dlm)
        tendon_stiffness = self.calc_tendon_stiffness(mli.norm_tendon_length)
        muscle_stiffness = self.calc_muscle_stiffness(tendon_stiffness,
                                                      fiber_stiffness_along_tendon)
        dft_dlm = self.calc_partial_tendon_force_partial_fiber_length(
            tendon_stiffness, mli.fiber_length, mli.sin_pennation_angle,
            mli.cos_pennation_angle)

        return DynamicsInfo(
            activation=activation,
            fiber_force=fiber_force,
            active_fiber_force=active_fiber_force,
            passive_fiber_force=con_passive_fiber_force + non_con_passive_fiber_force,
            passive_fiber_elastic_force=con_passive_fiber_force,
            passive_fiber_damping_force=non_con_passive_fiber_force,
            norm_fiber_force=norm_fiber_force,
            fiber_force_along_tendon=fiber_force_along_tendon,
            tendon_force=tendon_force,
            norm_tendon_force=norm_tendon_force,
            fiber_stiffness=fiber_stiffness,
            fiber_stiffness_along_tendon=fiber_stiffness_along_tendon,
            tendon_stiffness=tendon_stiffness,
            muscle_stiffness=muscle_stiffness,
            partial_pennation_angle_partial_fiber_length=dalpha_dlm,
            partial_fiber_force_along_tendon_partial_fiber_length=dfmat_dlm,
            partial_tendon_force_partial_fiber_length=dft_dlm,
            # power (positive when the element does work on the environment)
            fiber_active_power=-(active_fiber_force + non_con_passive_fiber_force) *
                               fvi.fiber_velocity,
            fiber_passive_power=-con_passive_fiber_force * fvi.fiber_velocity,
            tendon_power=-tendon_force * fvi.tendon_velocity,
            muscle_power=-tendon_force * muscle_tendon_velocity,
            equilibrium_residual=self.calc_equilibrium_residual(tendon_force,
                                                                fiber_force_along_tendon),
            linearized_equilibrium_residual_derivative=
                self.calc_linearized_equilibrium_residual_derivative(
                    muscle_tendon_velocity, fvi.fiber_velocity_along_tendon,
                    tendon_stiffness, fiber_stiffness_along_tendon),
            cos_pennation_angle=mli.cos_pennation_angle)

    def calc_potential_energy_info(self, length_info, ignore_tendon_compliance=None):
        if ignore_tendon_compliance is None:
            ignore_tendon_compliance = self.parameters.ignore_tendon_compliance
        fmax = self.parameters.max_isometric_force
        fiber_potential_energy = \
            self.passive_force_multiplier_integral(length_info.norm_fiber_length) * \
            self.parameters.optimal_fiber_length * fmax
        tendon_potential_energy = 0.0
        if not ignore_tendon_compliance:
            tendon_potential_energy = \
                self.tendon_force_multiplier_integral(length_info.norm_tendon_length) * \
                self.parameters.tendon_slack_length * fmax
        return PotentialEnergyInfo(
            fiber_potential_energy=fiber_potential_energy,
            tendon_potential_energy=tendon_potential_energy,
            muscle_potential_energy=fiber_potential_energy + tendon_potential_energy)
