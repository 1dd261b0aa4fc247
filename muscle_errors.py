# Exceptions used by the DeGroote-Fregly 2016 muscle model
#----------------------------------------------------------


class MuscleModelError(Exception):
    pass


class ConfigurationError(MuscleModelError, ValueError):
    # invalid muscle property, detected when the muscle is finalized
    def __init__(self, property_name, value, requirement):
        self.property_name = property_name
        self.value = value
        super().__init__(f"Property '{property_name}' = {value} is invalid: "
                         f"{requirement}")


class ConvergenceFailure(MuscleModelError):
    # fiber state estimator did not reach the tolerance within its iteration budget
    def __init__(self, muscle_name, iterations, tolerance, solution_error,
                 fiber_length):
        self.muscle_name = muscle_name
        self.iterations = iterations
        self.tolerance = tolerance
        self.solution_error = solution_error
        self.fiber_length = fiber_length
        super().__init__(f"Muscle '{muscle_name}': failed to compute muscle "
                         f"equilibrium state within {iterations} iterations "
                         f"with tolerance {tolerance}. Residual: "
                         f"{solution_error}, fiber length: {fiber_length}.")


# name used for this failure in OpenSim
MuscleCannotEquilibrate = ConvergenceFailure


class ModeMisuseError(MuscleModelError):
    # the queried quantity does not exist in the configured dynamics mode
    pass


class UnsupportedSourceTypeError(MuscleModelError):
    def __init__(self, muscle_name, concrete_class_name):
        self.muscle_name = muscle_name
        self.concrete_class_name = concrete_class_name
        super().__init__(f"Muscle '{muscle_name}' of type "
                         f"{concrete_class_name} is not supported and cannot "
                         f"be replaced. Use allow_unsupported=True to keep it.")


class ConvergenceWarning(UserWarning):
    # estimator converged, but the fiber length sits at one of its bounds
    pass
