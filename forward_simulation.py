# Forward simulation of a single muscle with explicit dynamics
#--------------------------------------------------------------

# The muscle-tendon length, lengthening speed and excitation are prescribed
# (callables of time, arrays sampled at t, or constants). The states are
# integrated with scipy's odeint starting from the initial fiber equilibrium.

import logging
import numpy as np
import pandas as pd
from scipy.integrate import odeint

from muscle_errors import ModeMisuseError

logger = logging.getLogger(__name__)


def _as_function(signal, t):
    if callable(signal):
        return signal
    if np.ndim(signal) == 0:
        value = float(signal)
        return lambda time: value
    signal = np.asarray(signal, dtype=float)
    return lambda time: np.interp(time, t, signal)


def _set_inputs(muscle, time, excitation, lmt, vmt):
    muscle.set_excitation(excitation(time))
    muscle.set_muscle_tendon_length(lmt(time))
    muscle.set_muscle_tendon_velocity(vmt(time))


def _set_states(muscle, state_names, x):
    for name, value in zip(state_names, x):
        if name == 'activation':
            muscle.set_activation(value)
        else:
            muscle.set_normalized_tendon_force(value)


def muscle_state_derivative(x, time, muscle, state_names, excitation, lmt, vmt):
    _set_inputs(muscle, time, excitation, lmt, vmt)
    _set_states(muscle, state_names, x)
    derivatives = muscle.compute_state_variable_derivatives()
    return [derivatives[name] for name in state_names]


def simulate_explicit(muscle, t, excitation, lmt, vmt=0.0, initial_activation=None):
    if muscle.get_implicit_enabled_normalized_tendon_force():
        raise ModeMisuseError(f'{muscle.name}: forward simulation requires explicit '
                              f'tendon compliance dynamics.')
    t = np.asarray(t, dtype=float)
    excitation = _as_function(excitation, t)
    lmt = _as_function(lmt, t)
    vmt = _as_function(vmt, t)

    # initial state
    _set_inputs(muscle, t[0], excitation, lmt, vmt)
    if initial_activation is None:
        initial_activation = muscle.get_excitation()
    muscle.set_activation(initial_activation)
    muscle.compute_initial_fiber_equilibrium()

    state_names = muscle.get_state_variable_names()
    x0 = []
    for name in state_names:
        if name == 'activation':
            x0.append(muscle.get_activation())
        else:
            x0.append(muscle.get_normalized_tendon_force())

    if state_names:
        x = odeint(muscle_state_derivative, x0, t,
                   args=(muscle, state_names, excitation, lmt, vmt))
    else:
        x = np.zeros((len(t), 0))
    logger.debug('simulated %s for %d time points', muscle.name, len(t))

    # post-processing
    results = {'time': t,
               'excitation': np.zeros(len(t)),
               'activation': np.zeros(len(t)),
               'normalized_tendon_force': np.zeros(len(t)),
               'tendon_force': np.zeros(len(t)),
               'norm_fiber_length': np.zeros(len(t)),
               'fiber_velocity': np.zeros(len(t))}
    for i, time in enumerate(t):
        _set_inputs(muscle, time, excitation, lmt, vmt)
        _set_states(muscle, state_names, x[i, :])
        mli = muscle.get_length_info()
        fvi = muscle.get_velocity_info(mli)
        mdi = muscle.get_dynamics_info(mli, fvi)
        results['excitation'][i] = muscle.get_excitation()
        results['activation'][i] = muscle.get_activation()
        results['normalized_tendon_force'][i] = mdi.norm_tendon_force
        results['tendon_force'][i] = mdi.tendon_force
        results['norm_fiber_length'][i] = mli.norm_fiber_length
        results['fiber_velocity'][i] = fvi.fiber_velocity
    return pd.DataFrame(results)
