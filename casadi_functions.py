# casadi functions of the DeGroote-Fregly 2016 muscle for direct collocation
#----------------------------------------------------------------------------

# The symbolic expressions are built with the same equilibrium code that is
# used for numerical evaluation (implicit tendon compliance dynamics), such
# that an optimizer gets exact derivatives of the muscle-tendon equilibrium.

import casadi as ca

from muscle_errors import ModeMisuseError
from tendon_dynamics import calc_activation_derivative


def casadi_func_muscle_dyn(muscle):
    if not muscle.get_implicit_enabled_normalized_tendon_force():
        raise ModeMisuseError(f'{muscle.name}: the muscle-tendon equilibrium residual '
                              f'is only exported with implicit tendon compliance dynamics.')

    # create symbolic variables for inputs
    a = ca.MX.sym('a')
    norm_tendon_force = ca.MX.sym('normalized_tendon_force')
    norm_tendon_force_dot = ca.MX.sym('normalized_tendon_force_derivative')
    lmt = ca.MX.sym('lmt')
    vmt = ca.MX.sym('vmt')

    mli, fvi, mdi = muscle.controller.evaluate(a, lmt, vmt, norm_tendon_force,
                                               norm_tendon_force_dot)
    residual = muscle.controller.implicit_residual(mdi)

    muscle_dyn_func = ca.Function('muscle_dyn_func',
                                  [a, norm_tendon_force, norm_tendon_force_dot, lmt, vmt],
                                  [residual, mdi.tendon_force, mli.norm_fiber_length,
                                   fvi.norm_fiber_velocity],
                                  ['a', 'normalized_tendon_force',
                                   'normalized_tendon_force_derivative', 'lmt', 'vmt'],
                                  ['muscle_dyn_constr', 'Ftendon', 'lm_tilde', 'vm_tilde'])
    return muscle_dyn_func


def casadi_func_activation_dynamics(muscle):
    e = ca.MX.sym('e')
    a = ca.MX.sym('a')
    dadt = calc_activation_derivative(e, a,
                                      muscle.get_property('activation_time_constant'),
                                      muscle.get_property('deactivation_time_constant'))
    return ca.Function('activation_dynamics', [e, a], [dadt], ['e', 'a'], ['dadt'])
