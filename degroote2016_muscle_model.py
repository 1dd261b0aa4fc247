# class with the DeGroote-Fregly 2016 muscle model

# This script defines the Hill muscle model class using the equations as proposed by De Groote et al. (2016),
# with normalized tendon force as the state of the tendon (explicit or implicit tendon compliance dynamics)

# The parameters of the active force-length and force-velocity curves are slightly modified w.r.t. the paper
# such that the curves pass through (1, 1) and (-1, 0), (0, 1) respectively. The tendon force-length curve is
# parameterized by the tendon strain at one normalized force instead of kT.

from dataclasses import replace
import logging
import warnings
import numpy as np

import muscle_curves as curves
from fiber_state_estimator import FiberStateEstimator, EstimatorStatus, \
    DEFAULT_TOLERANCE, DEFAULT_MAX_ITERATIONS
from muscle_equilibrium import EquilibriumModel
from muscle_errors import ConfigurationError, ConvergenceFailure, ConvergenceWarning, \
    ModeMisuseError
from muscle_parameters import MuscleParameters, compute_derived_constants
from tendon_dynamics import DynamicsModeController

logger = logging.getLogger(__name__)

STATE_ACTIVATION_NAME = 'activation'
STATE_NORMALIZED_TENDON_FORCE_NAME = 'normalized_tendon_force'
DERIVATIVE_NORMALIZED_TENDON_FORCE_NAME = 'implicitderiv_normalized_tendon_force'
RESIDUAL_NORMALIZED_TENDON_FORCE_NAME = 'implicitresidual_normalized_tendon_force'


class DeGrooteFregly2016Muscle:

    # init class
    def __init__(self, name='muscle', max_isometric_force=1000.0,
                 optimal_fiber_length=0.1, tendon_slack_length=0.2,
                 pennation_angle_at_optimal=0.0, max_contraction_velocity=10.0,
                 **properties):
        self.name = name
        self.parameters = MuscleParameters(
            max_isometric_force=max_isometric_force,
            optimal_fiber_length=optimal_fiber_length,
            tendon_slack_length=tendon_slack_length,
            pennation_angle_at_optimal=pennation_angle_at_optimal,
            max_contraction_velocity=max_contraction_velocity,
            **properties)

        # computed from properties
        self.constants = None
        self.equilibrium_model = None
        self.estimator = None
        self.controller = None
        self.finalize_from_properties()

        # kinematics and controls, provided by the host
        self.muscle_tendon_length = self.parameters.optimal_fiber_length + \
                                    self.parameters.tendon_slack_length
        self.muscle_tendon_velocity = 0.0
        self.excitation = 0.0

        # states
        self._activation = None
        self._normalized_tendon_force = None
        self._normalized_tendon_force_derivative = 0.0
        self.init_state()

    def finalize_from_properties(self):
        # validates the properties and (re)computes everything derived from them
        self.constants = compute_derived_constants(self.parameters)
        self.equilibrium_model = EquilibriumModel(self.parameters, self.constants)
        self.estimator = FiberStateEstimator(self.equilibrium_model)
        self.controller = DynamicsModeController(self.equilibrium_model)

    def init_state(self):
        self._activation = self.parameters.default_activation
        self._normalized_tendon_force = self.parameters.default_normalized_tendon_force
        self._normalized_tendon_force_derivative = 0.0
        if self.parameters.ignore_activation_dynamics:
            self.excitation = self.parameters.default_activation

    def set_properties_from_state(self):
        self.set_property('default_activation', self.get_activation())
        if not self.parameters.ignore_tendon_compliance:
            self.set_property('default_normalized_tendon_force',
                              self._normalized_tendon_force)

    #---------------------------------
    #       properties
    #---------------------------------

    def get_property(self, name):
        return getattr(self.parameters, name)

    def set_property(self, name, value):
        self.set_properties(**{name: value})

    def set_properties(self, **properties):
        names = MuscleParameters.property_names()
        for name, value in properties.items():
            if name not in names:
                raise ConfigurationError(name, value, "is not a muscle property")
        parameters = replace(self.parameters, **properties)
        # validate before changing the muscle
        compute_derived_constants(parameters)
        self.parameters = parameters
        self.finalize_from_properties()

    def set_maximal_isometric_force(self, FMo):
        self.set_property('max_isometric_force', FMo)

    def set_optimal_fiber_length(self, lMo):
        self.set_property('optimal_fiber_length', lMo)

    def set_tendon_slack_length(self, lTs):
        self.set_property('tendon_slack_length', lTs)

    def set_optimal_pennation_angle(self, alpha):
        self.set_property('pennation_angle_at_optimal', alpha)

    def set_maximal_fiber_velocity(self, vmax):
        self.set_property('max_contraction_velocity', vmax)

    def set_tendon_strain_at_one_norm_force(self, strain):
        self.set_property('tendon_strain_at_one_norm_force', strain)

    def get_maximal_isometric_force(self):
        return self.parameters.max_isometric_force

    def get_optimal_fiber_length(self):
        return self.parameters.optimal_fiber_length

    def get_tendon_slack_length(self):
        return self.parameters.tendon_slack_length

    def get_kT(self):
        return self.constants.kT

    def get_fiber_width(self):
        return self.constants.fiber_width

    #---------------------------------
    #       kinematics, controls and states
    #---------------------------------

    def set_muscle_tendon_length(self, lmt):
        self.muscle_tendon_length = lmt

    def set_muscle_tendon_velocity(self, vmt):
        self.muscle_tendon_velocity = vmt

    def set_excitation(self, e):
        self.excitation = e

    def get_excitation(self):
        return self.excitation

    def get_activation(self):
        # with ignored activation dynamics, the activation is the excitation
        if self.parameters.ignore_activation_dynamics:
            return self.excitation
        return self._activation

    def set_activation(self, a):
        if self.parameters.ignore_activation_dynamics:
            self.excitation = a
        else:
            self._activation = a

    def get_normalized_tendon_force(self):
        # with a rigid tendon, this is the normalized fiber force along the tendon
        if self.parameters.ignore_tendon_compliance:
            return self.get_tendon_force() / self.parameters.max_isometric_force
        return self._normalized_tendon_force

    def set_normalized_tendon_force(self, norm_tendon_force):
        if self.parameters.ignore_tendon_compliance:
            return
        lower, upper = self.get_bounds_normalized_tendon_force()
        clipped = float(np.clip(norm_tendon_force, lower, upper))
        if clipped != norm_tendon_force:
            logger.warning('%s: normalized tendon force %s clamped to [%s, %s]',
                           self.name, norm_tendon_force, lower, upper)
        self._normalized_tendon_force = clipped

    def get_normalized_tendon_force_derivative(self):
        if self.parameters.ignore_tendon_compliance:
            return 0.0
        if self.controller.implicit_enabled:
            return self._normalized_tendon_force_derivative
        mli = self.get_length_info()
        fvi = self.get_velocity_info(mli)
        return self.controller.calc_norm_tendon_force_derivative(mli, fvi)

    def set_normalized_tendon_force_derivative(self, norm_tendon_force_derivative):
        if not self.controller.implicit_enabled:
            raise ModeMisuseError(f"{self.name}: the derivative of normalized tendon "
                                  f"force is only an input with implicit tendon "
                                  f"compliance dynamics (mode: {self.controller.mode}).")
        self._normalized_tendon_force_derivative = norm_tendon_force_derivative

    def get_state_variable_names(self):
        names = []
        if not self.parameters.ignore_activation_dynamics:
            names.append(STATE_ACTIVATION_NAME)
        if not self.parameters.ignore_tendon_compliance:
            names.append(STATE_NORMALIZED_TENDON_FORCE_NAME)
        return names

    @staticmethod
    def get_activation_state_name():
        return STATE_ACTIVATION_NAME

    @staticmethod
    def get_normalized_tendon_force_state_name():
        return STATE_NORMALIZED_TENDON_FORCE_NAME

    @staticmethod
    def get_implicit_dynamics_derivative_name():
        return DERIVATIVE_NORMALIZED_TENDON_FORCE_NAME

    @staticmethod
    def get_implicit_dynamics_residual_name():
        return RESIDUAL_NORMALIZED_TENDON_FORCE_NAME

    @staticmethod
    def get_min_normalized_tendon_force():
        return curves.MIN_NORM_TENDON_FORCE

    @staticmethod
    def get_max_normalized_tendon_force():
        return curves.MAX_NORM_TENDON_FORCE

    def get_bounds_normalized_tendon_force(self):
        return (self.get_min_normalized_tendon_force(),
                self.get_max_normalized_tendon_force())

    def get_implicit_enabled_normalized_tendon_force(self):
        return self.controller.implicit_enabled

    #---------------------------------
    #       Evaluate muscle
    #---------------------------------

    def get_length_info(self):
        return self.controller.calc_length_info(self.muscle_tendon_length,
                                                self._normalized_tendon_force)

    def get_velocity_info(self, length_info=None):
        if length_info is None:
            length_info = self.get_length_info()
        return self.controller.calc_velocity_info(
            self.muscle_tendon_velocity, self.get_activation(), length_info,
            self._normalized_tendon_force, self._normalized_tendon_force_derivative)

    def get_dynamics_info(self, length_info=None, velocity_info=None):
        if length_info is None:
            length_info = self.get_length_info()
        if velocity_info is None:
            velocity_info = self.get_velocity_info(length_info)
        return self.controller.calc_dynamics_info(
            self.get_activation(), self.muscle_tendon_velocity, length_info,
            velocity_info, self._normalized_tendon_force)

    def get_potential_energy_info(self, length_info=None):
        if length_info is None:
            length_info = self.get_length_info()
        return self.equilibrium_model.calc_potential_energy_info(length_info)

    def compute_actuation(self):
        return self.get_dynamics_info().tendon_force

    def compute_potential_energy(self):
        return self.get_potential_energy_info().muscle_potential_energy

    def compute_state_variable_derivatives(self):
        # dictionary with the derivative of each state variable (explicit formulation)
        return self.controller.calc_state_derivatives(
            self.excitation, self.get_activation(), self.muscle_tendon_length,
            self.muscle_tendon_velocity, self._normalized_tendon_force)

    def compute_activation_derivative(self):
        return self.controller.calc_activation_derivative(self.excitation,
                                                          self.get_activation())

    def get_equilibrium_residual(self):
        return self.get_dynamics_info().equilibrium_residual

    def get_linearized_equilibrium_residual_derivative(self):
        return self.get_dynamics_info().linearized_equilibrium_residual_derivative

    def get_implicit_residual_normalized_tendon_force(self):
        return self.controller.implicit_residual(self.get_dynamics_info())

    # getters for individual quantities
    def get_tendon_force(self):
        return self.get_dynamics_info().tendon_force

    def get_fiber_force(self):
        return self.get_dynamics_info().fiber_force

    def get_active_fiber_force(self):
        return self.get_dynamics_info().active_fiber_force

    def get_active_fiber_force_along_tendon(self):
        return self.get_dynamics_info().active_fiber_force_along_tendon

    def get_passive_fiber_elastic_force(self):
        return self.get_dynamics_info().passive_fiber_elastic_force

    def get_passive_fiber_elastic_force_along_tendon(self):
        return self.get_dynamics_info().passive_fiber_elastic_force_along_tendon

    def get_passive_fiber_damping_force(self):
        return self.get_dynamics_info().passive_fiber_damping_force

    def get_passive_fiber_damping_force_along_tendon(self):
        return self.get_dynamics_info().passive_fiber_damping_force_along_tendon

    def get_fiber_length(self):
        return self.get_length_info().fiber_length

    def get_norm_fiber_length(self):
        return self.get_length_info().norm_fiber_length

    def get_tendon_length(self):
        return self.get_length_info().tendon_length

    def get_pennation_angle(self):
        return self.get_length_info().pennation_angle

    def get_fiber_velocity(self):
        return self.get_velocity_info().fiber_velocity

    def get_norm_fiber_velocity(self):
        return self.get_velocity_info().norm_fiber_velocity

    #---------------------------------
    #       Equilibrium
    #---------------------------------

    def estimate_muscle_fiber_state(self, activation, muscle_tendon_length,
                                    muscle_tendon_velocity,
                                    norm_tendon_force_derivative=0.0,
                                    tolerance=DEFAULT_TOLERANCE,
                                    max_iterations=DEFAULT_MAX_ITERATIONS):
        if self.parameters.ignore_tendon_compliance:
            raise ModeMisuseError(f"{self.name}: there is no fiber state to estimate "
                                  f"when tendon compliance is ignored.")
        return self.estimator.estimate(activation, muscle_tendon_length,
                                       muscle_tendon_velocity,
                                       norm_tendon_force_derivative,
                                       tolerance=tolerance,
                                       max_iterations=max_iterations)

    def compute_initial_fiber_equilibrium(self, tolerance=DEFAULT_TOLERANCE,
                                          max_iterations=DEFAULT_MAX_ITERATIONS):
        # fiber velocity is computed assuming zero tendon force derivative
        if self.parameters.ignore_tendon_compliance:
            return None
        result = self.estimate_muscle_fiber_state(
            self.get_activation(), self.muscle_tendon_length,
            self.muscle_tendon_velocity, 0.0, tolerance, max_iterations)

        if result.status == EstimatorStatus.MAX_ITERATIONS_REACHED:
            raise ConvergenceFailure(self.name, result.iterations, tolerance,
                                     result.solution_error, result.fiber_length)
        if result.status != EstimatorStatus.CONVERGED:
            message = (f"{self.name}: initial fiber equilibrium found with the fiber "
                       f"at its {'lower' if result.status == EstimatorStatus.FIBER_AT_LOWER_BOUND else 'upper'} "
                       f"bound (fiber length {result.fiber_length}, residual "
                       f"{result.solution_error}).")
            logger.warning(message)
            warnings.warn(message, ConvergenceWarning, stacklevel=2)

        self.set_normalized_tendon_force(result.normalized_tendon_force)
        # the state was solved with zero tendon force derivative
        self._normalized_tendon_force_derivative = 0.0
        return result

    def calc_inextensible_tendon_active_fiber_force(self, activation):
        # active fiber force when the tendon is rigid, at the current kinematics
        mli = self.equilibrium_model.calc_length_info(self.muscle_tendon_length, 0.0,
                                                      ignore_tendon_compliance=True)
        fvi = self.equilibrium_model.calc_velocity_info(self.muscle_tendon_velocity,
                                                        activation, mli, 0.0,
                                                        ignore_tendon_compliance=True)
        mdi = self.equilibrium_model.calc_dynamics_info(activation,
                                                        self.muscle_tendon_velocity,
                                                        mli, fvi, 0.0,
                                                        ignore_tendon_compliance=True)
        return mdi.active_fiber_force

    #---------------------------------
    #       Curves
    #---------------------------------

    def calc_active_force_length_multiplier(self, norm_fiber_length):
        return self.equilibrium_model.active_force_length_multiplier(norm_fiber_length)

    def calc_active_force_length_multiplier_derivative(self, norm_fiber_length):
        return self.equilibrium_model.active_force_length_multiplier_derivative(
            norm_fiber_length)

    @staticmethod
    def calc_force_velocity_multiplier(norm_fiber_velocity):
        return curves.calc_force_velocity_multiplier(norm_fiber_velocity)

    @staticmethod
    def calc_force_velocity_inverse_curve(force_velocity_multiplier):
        return curves.calc_force_velocity_inverse_curve(force_velocity_multiplier)

    def calc_passive_force_multiplier(self, norm_fiber_length):
        return self.equilibrium_model.passive_force_multiplier(norm_fiber_length)

    def calc_passive_force_multiplier_derivative(self, norm_fiber_length):
        return self.equilibrium_model.passive_force_multiplier_derivative(norm_fiber_length)

    def calc_passive_force_multiplier_integral(self, norm_fiber_length):
        return self.equilibrium_model.passive_force_multiplier_integral(norm_fiber_length)

    def calc_tendon_force_multiplier(self, norm_tendon_length):
        return self.equilibrium_model.tendon_force_multiplier(norm_tendon_length)

    def calc_tendon_force_multiplier_derivative(self, norm_tendon_length):
        return self.equilibrium_model.tendon_force_multiplier_derivative(norm_tendon_length)

    def calc_tendon_force_multiplier_integral(self, norm_tendon_length):
        return self.equilibrium_model.tendon_force_multiplier_integral(norm_tendon_length)

    def calc_tendon_force_length_inverse_curve(self, norm_tendon_force):
        return self.equilibrium_model.tendon_force_length_inverse_curve(norm_tendon_force)
