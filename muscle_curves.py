# Normalized curves of the DeGroote-Fregly 2016 muscle
#------------------------------------------------------

# All curves are closed-form and smooth so that they can be used in gradient
# based optimization. Each function works on floats, numpy arrays and scalar
# casadi symbols (numpy dispatches exp, log, sqrt, sinh to casadi objects).

# De Groote, F., Kinney, A. L., Rao, A. V., & Fregly, B. J. (2016). Evaluation
# of Direct Collocation Optimal Control Problem Formulations for Solving the
# Muscle Redundancy Problem. Annals of Biomedical Engineering, 44(10), 1-15.

import numpy as np

# active fiber force-length curve (sum of three gaussian-like curves)
# b11 is modified w.r.t. the supplement to ensure that f(1) = 1
B1 = (0.8150671134243542, 0.433004984392647, 0.1)
B2 = (1.055033428970575, 0.716775413397760, 1.0)
B3 = (0.162384573599574, -0.029947116970696, 0.353553390593274)
B4 = (0.063303448465465, 0.200356847296188, 0.0)

# passive fiber force-length curve: exponential shape factor
KPE = 4.0

# tendon force-length curve. c2 = c3 such that the curve passes through (1, 0)
C1 = 0.200
C2 = 1.0
C3 = 0.200

# force-velocity curve. d1 and d4 are solved such that the curve passes
# through (-1, 0) and (0, 1)
D1 = -0.3211346127989808
D2 = -8.149
D3 = -0.374
D4 = 0.8825327733249912

MIN_NORM_FIBER_LENGTH = 0.2
MAX_NORM_FIBER_LENGTH = 1.8

MIN_NORM_TENDON_FORCE = 0.0
MAX_NORM_TENDON_FORCE = 5.0


def _zeros_like(x):
    if np.ndim(x) == 0:
        return 0.0
    return np.zeros(np.shape(x))


#---------------------------------
#       active force-length
#---------------------------------

def calc_gaussian_like_curve(x, b1, b2, b3, b4):
    # note: the supplement of De Groote et al. 2016 misses the square in the denominator
    return b1 * np.exp(-0.5 * (x - b2) ** 2 / (b3 + b4 * x) ** 2)


def calc_gaussian_like_curve_derivative(x, b1, b2, b3, b4):
    return (b1 * np.exp(-(b2 - x) ** 2 / (2 * (b3 + b4 * x) ** 2)) *
            (b2 - x) * (b3 + b2 * b4)) / (b3 + b4 * x) ** 3


def _scale_fiber_length(norm_fiber_length, active_force_width_scale):
    # shift the peak to the origin, scale horizontally and shift back to x = 1
    return (norm_fiber_length - 1.0) / active_force_width_scale + 1.0


def calc_active_force_length_multiplier(norm_fiber_length,
                                        active_force_width_scale=1.0):
    x = _scale_fiber_length(norm_fiber_length, active_force_width_scale)
    fact = 0
    for ii in range(3):
        fact = fact + calc_gaussian_like_curve(x, B1[ii], B2[ii], B3[ii], B4[ii])
    return fact


def calc_active_force_length_multiplier_derivative(norm_fiber_length,
                                                   active_force_width_scale=1.0):
    x = _scale_fiber_length(norm_fiber_length, active_force_width_scale)
    dfact = 0
    for ii in range(3):
        dfact = dfact + calc_gaussian_like_curve_derivative(x, B1[ii], B2[ii],
                                                            B3[ii], B4[ii])
    return dfact / active_force_width_scale


#---------------------------------
#       force-velocity
#---------------------------------

def calc_force_velocity_multiplier(norm_fiber_velocity):
    """Force-velocity multiplier.

    Domain [-1, 1] (shortening at maximal velocity to lengthening at maximal
    velocity), range [0, 1.794]. The curve is defined outside of this domain.
    """
    temp_v = D2 * norm_fiber_velocity + D3
    temp_log_arg = temp_v + np.sqrt(temp_v ** 2 + 1.0)
    return D1 * np.log(temp_log_arg) + D4


def calc_force_velocity_multiplier_derivative(norm_fiber_velocity):
    temp_v = D2 * norm_fiber_velocity + D3
    return D1 * D2 / np.sqrt(temp_v ** 2 + 1.0)


def calc_force_velocity_inverse_curve(force_velocity_multiplier):
    # the equation in the supplement misses "- d3" before dividing by d2
    return (np.sinh((force_velocity_multiplier - D4) / D1) - D3) / D2


# multiplier at maximal lengthening velocity (~1.794)
MAX_FORCE_VELOCITY_MULTIPLIER = float(calc_force_velocity_multiplier(1.0))


#---------------------------------
#       passive force-length
#---------------------------------

# The exponential curve of the supplement passes through y = 0 at x = 1 and
# gives negative forces below optimal fiber length. Here the curve is shifted
# such that it passes through y = 0 at the minimal fiber length (x = 0.2).

def calc_passive_force_multiplier(norm_fiber_length, e0=0.6,
                                  ignore_passive_fiber_force=False):
    if ignore_passive_fiber_force:
        return _zeros_like(norm_fiber_length)
    offset = np.exp(KPE * (MIN_NORM_FIBER_LENGTH - 1.0) / e0)
    denom = np.exp(KPE) - offset
    return (np.exp(KPE * (norm_fiber_length - 1.0) / e0) - offset) / denom


def calc_passive_force_multiplier_derivative(norm_fiber_length, e0=0.6,
                                             ignore_passive_fiber_force=False):
    if ignore_passive_fiber_force:
        return _zeros_like(norm_fiber_length)
    offset = np.exp(KPE * (MIN_NORM_FIBER_LENGTH - 1.0) / e0)
    return (KPE * np.exp(KPE * (norm_fiber_length - 1.0) / e0)) / \
           (e0 * (np.exp(KPE) - offset))


def calc_passive_force_multiplier_integral(norm_fiber_length, e0=0.6,
                                           ignore_passive_fiber_force=False):
    """Integral of the passive force multiplier from 0 to norm_fiber_length."""
    if ignore_passive_fiber_force:
        return _zeros_like(norm_fiber_length)
    temp1 = np.exp(KPE * MIN_NORM_FIBER_LENGTH / e0)
    denom = np.exp(KPE * (1.0 + 1.0 / e0)) - temp1
    temp2 = KPE / e0 * norm_fiber_length
    return (e0 / KPE * (np.exp(temp2) - 1.0) - norm_fiber_length * temp1) / denom


#---------------------------------
#       tendon force-length
#---------------------------------

def calc_tendon_stiffness_parameter(tendon_strain_at_one_norm_force):
    # kT such that the tendon force is 1 at a strain of tendon_strain_at_one_norm_force
    return np.log((1.0 + C3) / C1) / (1.0 + tendon_strain_at_one_norm_force - C2)


def calc_tendon_force_multiplier(norm_tendon_length, kT):
    return C1 * np.exp(kT * (norm_tendon_length - C2)) - C3


def calc_tendon_force_multiplier_derivative(norm_tendon_length, kT):
    return C1 * kT * np.exp(kT * (norm_tendon_length - C2))


def calc_tendon_force_multiplier_integral(norm_tendon_length, kT):
    """Integral of the tendon force multiplier from slack length (1) to norm_tendon_length."""
    antiderivative = C1 * np.exp(kT * (norm_tendon_length - C2)) / kT - \
                     C3 * norm_tendon_length
    at_slack = C1 * np.exp(kT * (1.0 - C2)) / kT - C3
    return antiderivative - at_slack


def calc_tendon_force_length_inverse_curve(norm_tendon_force, kT):
    return np.log((norm_tendon_force + C3) / C1) / kT + C2


def calc_tendon_force_length_inverse_curve_derivative(norm_tendon_force_derivative,
                                                      norm_tendon_length, kT):
    # normalized tendon velocity from the time derivative of normalized tendon force
    return norm_tendon_force_derivative / \
           (C1 * kT * np.exp(kT * (norm_tendon_length - C2)))
