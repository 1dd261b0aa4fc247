# Estimate the fiber state consistent with muscle-tendon equilibrium
#--------------------------------------------------------------------

# Newton iteration on fiber length. For a fiber length estimate the tendon
# length follows from the muscle-tendon length (fixed width pennation), the
# tendon force from the tendon force-length curve and the fiber velocity from
# the given time derivative of the normalized tendon force. The root of
#       residual = tendon_force - fiber_force_along_tendon
# is found using the analytic partial derivative of the residual with respect
# to fiber length. The estimate is kept within the valid range of fiber
# lengths.

from dataclasses import dataclass
from enum import Enum
import logging
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-8
DEFAULT_MAX_ITERATIONS = 200


class EstimatorStatus(Enum):
    CONVERGED = 'converged'
    FIBER_AT_LOWER_BOUND = 'fiber_at_lower_bound'
    FIBER_AT_UPPER_BOUND = 'fiber_at_upper_bound'
    MAX_ITERATIONS_REACHED = 'max_iterations_reached'


@dataclass(frozen=True)
class EstimatorResult:
    status: EstimatorStatus
    iterations: int
    solution_error: float
    fiber_length: float
    fiber_velocity: float
    normalized_tendon_force: float

    @property
    def converged(self):
        # a solution at a bound is usable, the caller decides how to report it
        return self.status != EstimatorStatus.MAX_ITERATIONS_REACHED


class FiberStateEstimator:
    def __init__(self, equilibrium_model):
        self.equilibrium_model = equilibrium_model

    def evaluate_residual(self, fiber_length, activation, muscle_tendon_length,
                          muscle_tendon_velocity, norm_tendon_force_derivative):
        # tendon compliance is never ignored here, and the fiber velocity
        # always follows from the tendon force derivative
        model = self.equilibrium_model
        p = model.parameters
        tendon_length = muscle_tendon_length - \
                        np.sqrt(fiber_length ** 2 - model.constants.square_fiber_width)
        norm_tendon_force = model.tendon_force_multiplier(tendon_length /
                                                          p.tendon_slack_length)
        mli = model.calc_length_info(muscle_tendon_length, norm_tendon_force,
                                     ignore_tendon_compliance=False)
        fvi = model.calc_velocity_info(muscle_tendon_velocity, activation, mli,
                                       norm_tendon_force, norm_tendon_force_derivative,
                                       ignore_tendon_compliance=False,
                                       tendon_dynamics_explicit=False)
        mdi = model.calc_dynamics_info(activation, muscle_tendon_velocity, mli, fvi,
                                       norm_tendon_force, ignore_tendon_compliance=False)
        return mli, fvi, mdi

    def estimate(self, activation, muscle_tendon_length, muscle_tendon_velocity,
                 norm_tendon_force_derivative=0.0, tolerance=DEFAULT_TOLERANCE,
                 max_iterations=DEFAULT_MAX_ITERATIONS, initial_fiber_length=None):
        constants = self.equilibrium_model.constants
        lower = constants.min_fiber_length
        upper = constants.max_fiber_length

        fiber_length = initial_fiber_length
        if fiber_length is None:
            fiber_length = self.equilibrium_model.parameters.optimal_fiber_length
        fiber_length = min(max(fiber_length, lower), upper)

        at_bound = None
        residual = np.inf
        fiber_velocity = np.nan
        norm_tendon_force = np.nan
        evaluated_fiber_length = fiber_length
        best = None
        iterations = 0
        status = EstimatorStatus.MAX_ITERATIONS_REACHED
        while iterations < max_iterations:
            evaluated_fiber_length = fiber_length
            mli, fvi, mdi = self.evaluate_residual(
                fiber_length, activation, muscle_tendon_length,
                muscle_tendon_velocity, norm_tendon_force_derivative)
            residual = mdi.equilibrium_residual
            fiber_velocity = fvi.fiber_velocity
            norm_tendon_force = mdi.norm_tendon_force
            iterations += 1
            if best is None or abs(residual) < abs(best[0]):
                best = (residual, fiber_length, fiber_velocity, norm_tendon_force)

            if abs(residual) < tolerance:
                if at_bound == 'lower':
                    status = EstimatorStatus.FIBER_AT_LOWER_BOUND
                elif at_bound == 'upper':
                    status = EstimatorStatus.FIBER_AT_UPPER_BOUND
                else:
                    status = EstimatorStatus.CONVERGED
                break

            # Newton step: d_residual/d_fiber_length
            partial_residual_partial_fiber_length = \
                mdi.partial_tendon_force_partial_fiber_length - \
                mdi.partial_fiber_force_along_tendon_partial_fiber_length
            new_fiber_length = fiber_length - residual / partial_residual_partial_fiber_length
            if not np.isfinite(new_fiber_length):
                logger.debug('non-finite Newton step at fiber length %s', fiber_length)
                break

            if new_fiber_length <= lower:
                if at_bound == 'lower':
                    # the solution lies below the valid range
                    status = EstimatorStatus.FIBER_AT_LOWER_BOUND
                    break
                new_fiber_length = lower
                at_bound = 'lower'
            elif new_fiber_length >= upper:
                if at_bound == 'upper':
                    status = EstimatorStatus.FIBER_AT_UPPER_BOUND
                    break
                new_fiber_length = upper
                at_bound = 'upper'
            else:
                at_bound = None
            fiber_length = new_fiber_length

        if status == EstimatorStatus.MAX_ITERATIONS_REACHED and best is not None:
            # report the iterate with the smallest residual
            residual, evaluated_fiber_length, fiber_velocity, norm_tendon_force = best

        logger.debug('fiber state estimate: %s after %d iterations (residual %s)',
                     status.value, iterations, residual)

        return EstimatorResult(status=status,
                               iterations=iterations,
                               solution_error=residual,
                               fiber_length=evaluated_fiber_length,
                               fiber_velocity=fiber_velocity,
                               normalized_tendon_force=norm_tendon_force)
