# Activation and tendon compliance dynamics of the DeGroote-Fregly 2016 muscle
#------------------------------------------------------------------------------

# States: activation and normalized tendon force.
#   - activation: first order dynamics driven by excitation, or equal to the
#     excitation when activation dynamics are ignored.
#   - normalized tendon force:
#       explicit: the derivative follows from the fiber velocity, computed with
#                 the inverse of the force-velocity curve (time-stepping).
#       implicit: the derivative is an input (e.g. an optimization variable)
#                 and the muscle-tendon equilibrium residual is an output that
#                 the solver has to drive to zero (direct collocation).
#       rigid:    tendon compliance is ignored, the tendon force equals the
#                 fiber force along the tendon and is not a state.
# The tendon dynamics are selected once, when the muscle is finalized.

import numpy as np

from muscle_errors import ModeMisuseError

TANH_STEEPNESS = 10.0


def calc_activation_derivative(excitation, activation, activation_time_constant,
                               deactivation_time_constant, tanh_steepness=TANH_STEEPNESS):
    # De Groote et al. 2016, smooth switch between activation and deactivation
    #     f = 0.5 tanh(b(e - a))
    #     z = 0.5 + 1.5a
    # da/dt = [1/(tau_a z) (f + 0.5) + z/tau_d (-f + 0.5)] (e - a)
    time_const_factor = 0.5 + 1.5 * activation
    d1 = 1.0 / (activation_time_constant * time_const_factor)
    d2 = time_const_factor / deactivation_time_constant
    f = 0.5 * np.tanh(tanh_steepness * (excitation - activation))
    return (d1 * (f + 0.5) + d2 * (-f + 0.5)) * (excitation - activation)


class ExplicitTendonDynamics:
    name = 'explicit'
    has_state = True
    implicit_enabled = False

    def calc_velocity_info(self, model, muscle_tendon_velocity, activation,
                           length_info, norm_tendon_force, norm_tendon_force_derivative):
        return model.calc_velocity_info(muscle_tendon_velocity, activation, length_info,
                                        norm_tendon_force,
                                        ignore_tendon_compliance=False,
                                        tendon_dynamics_explicit=True)

    def calc_norm_tendon_force_derivative(self, model, length_info, velocity_info):
        return velocity_info.norm_tendon_velocity * \
               model.tendon_force_multiplier_derivative(length_info.norm_tendon_length)

    def implicit_residual(self, dynamics_info):
        raise ModeMisuseError('The implicit residual of normalized tendon force is '
                              'not available with explicit tendon compliance dynamics.')


class ImplicitTendonDynamics:
    name = 'implicit'
    has_state = True
    implicit_enabled = True

    def calc_velocity_info(self, model, muscle_tendon_velocity, activation,
                           length_info, norm_tendon_force, norm_tendon_force_derivative):
        return model.calc_velocity_info(muscle_tendon_velocity, activation, length_info,
                                        norm_tendon_force, norm_tendon_force_derivative,
                                        ignore_tendon_compliance=False,
                                        tendon_dynamics_explicit=False)

    def calc_norm_tendon_force_derivative(self, model, length_info, velocity_info):
        raise ModeMisuseError('The derivative of normalized tendon force is an input '
                              'with implicit tendon compliance dynamics; forward '
                              'time-stepping requires explicit mode.')

    def implicit_residual(self, dynamics_info):
        return dynamics_info.equilibrium_residual


class RigidTendon:
    name = 'rigid'
    has_state = False
    implicit_enabled = False

    def calc_velocity_info(self, model, muscle_tendon_velocity, activation,
                           length_info, norm_tendon_force, norm_tendon_force_derivative):
        return model.calc_velocity_info(muscle_tendon_velocity, activation, length_info,
                                        norm_tendon_force,
                                        ignore_tendon_compliance=True)

    def calc_norm_tendon_force_derivative(self, model, length_info, velocity_info):
        return 0.0

    def implicit_residual(self, dynamics_info):
        raise ModeMisuseError('The implicit residual of normalized tendon force is '
                              'not available when tendon compliance is ignored.')


def select_tendon_dynamics(parameters, constants):
    if parameters.ignore_tendon_compliance:
        return RigidTendon()
    if constants.is_tendon_dynamics_explicit:
        return ExplicitTendonDynamics()
    return ImplicitTendonDynamics()


class DynamicsModeController:
    def __init__(self, equilibrium_model):
        self.equilibrium_model = equilibrium_model
        self.tendon_dynamics = select_tendon_dynamics(equilibrium_model.parameters,
                                                      equilibrium_model.constants)

    @property
    def mode(self):
        return self.tendon_dynamics.name

    @property
    def implicit_enabled(self):
        return self.tendon_dynamics.implicit_enabled

    # evaluation in the order length -> velocity -> dynamics
    def calc_length_info(self, muscle_tendon_length, norm_tendon_force):
        return self.equilibrium_model.calc_length_info(muscle_tendon_length,
                                                       norm_tendon_force)

    def calc_velocity_info(self, muscle_tendon_velocity, activation, length_info,
                           norm_tendon_force, norm_tendon_force_derivative=0.0):
        return self.tendon_dynamics.calc_velocity_info(
            self.equilibrium_model, muscle_tendon_velocity, activation, length_info,
            norm_tendon_force, norm_tendon_force_derivative)

    def calc_dynamics_info(self, activation, muscle_tendon_velocity, length_info,
                           velocity_info, norm_tendon_force):
        return self.equilibrium_model.calc_dynamics_info(
            activation, muscle_tendon_velocity, length_info, velocity_info,
            norm_tendon_force)

    def evaluate(self, activation, muscle_tendon_length, muscle_tendon_velocity,
                 norm_tendon_force, norm_tendon_force_derivative=0.0):
        mli = self.calc_length_info(muscle_tendon_length, norm_tendon_force)
        fvi = self.calc_velocity_info(muscle_tendon_velocity, activation, mli,
                                      norm_tendon_force, norm_tendon_force_derivative)
        mdi = self.calc_dynamics_info(activation, muscle_tendon_velocity, mli, fvi,
                                      norm_tendon_force)
        return mli, fvi, mdi

    # derivative / residual contracts
    def calc_activation_derivative(self, excitation, activation):
        p = self.equilibrium_model.parameters
        if p.ignore_activation_dynamics:
            return 0.0
        return calc_activation_derivative(excitation, activation,
                                          p.activation_time_constant,
                                          p.deactivation_time_constant)

    def calc_norm_tendon_force_derivative(self, length_info, velocity_info):
        return self.tendon_dynamics.calc_norm_tendon_force_derivative(
            self.equilibrium_model, length_info, velocity_info)

    def calc_state_derivatives(self, excitation, activation, muscle_tendon_length,
                               muscle_tendon_velocity, norm_tendon_force):
        # only the states that exist in this configuration are returned
        p = self.equilibrium_model.parameters
        derivatives = {}
        if not p.ignore_activation_dynamics:
            derivatives['activation'] = self.calc_activation_derivative(excitation,
                                                                        activation)
        if self.tendon_dynamics.has_state:
            mli, fvi, mdi = self.evaluate(activation, muscle_tendon_length,
                                          muscle_tendon_velocity, norm_tendon_force)
            derivatives['normalized_tendon_force'] = \
                self.calc_norm_tendon_force_derivative(mli, fvi)
        return derivatives

    def implicit_residual(self, dynamics_info):
        return self.tendon_dynamics.implicit_residual(dynamics_info)
