# Replace muscles of an OpenSim model by DeGroote-Fregly 2016 muscles
#---------------------------------------------------------------------

# Source muscles are either SourceMuscle records or objects with the OpenSim
# python API (getConcreteClassName, getMaxIsometricForce, ...), e.g. the
# muscles of osim.Model(modelfile).getMuscles().

from dataclasses import dataclass
import logging

from degroote2016_muscle_model import DeGrooteFregly2016Muscle
from muscle_errors import UnsupportedSourceTypeError

logger = logging.getLogger(__name__)

SUPPORTED_MUSCLE_TYPES = ('Millard2012EquilibriumMuscle', 'Thelen2003Muscle')


@dataclass
class SourceMuscle:
    name: str
    concrete_class_name: str
    max_isometric_force: float
    optimal_fiber_length: float
    tendon_slack_length: float
    pennation_angle_at_optimal: float
    max_contraction_velocity: float
    ignore_tendon_compliance: bool = False
    ignore_activation_dynamics: bool = False
    activation_time_constant: float = None
    deactivation_time_constant: float = None


def get_concrete_class_name(muscle):
    if hasattr(muscle, 'getConcreteClassName'):
        return muscle.getConcreteClassName()
    return muscle.concrete_class_name


def read_muscle_properties(muscle):
    if isinstance(muscle, SourceMuscle):
        return muscle
    # OpenSim API
    source = SourceMuscle(
        name=muscle.getName(),
        concrete_class_name=muscle.getConcreteClassName(),
        max_isometric_force=muscle.getMaxIsometricForce(),
        optimal_fiber_length=muscle.getOptimalFiberLength(),
        tendon_slack_length=muscle.getTendonSlackLength(),
        pennation_angle_at_optimal=muscle.getPennationAngleAtOptimalFiberLength(),
        max_contraction_velocity=muscle.getMaxContractionVelocity(),
        ignore_tendon_compliance=muscle.get_ignore_tendon_compliance(),
        ignore_activation_dynamics=muscle.get_ignore_activation_dynamics())
    if source.concrete_class_name == 'Thelen2003Muscle':
        source.activation_time_constant = muscle.get_activation_time_constant()
        source.deactivation_time_constant = muscle.get_deactivation_time_constant()
    return source


def convert_muscle(muscle, **properties):
    # copy the properties shared by the muscle models
    source = read_muscle_properties(muscle)
    if source.activation_time_constant is not None:
        properties.setdefault('activation_time_constant', source.activation_time_constant)
    if source.deactivation_time_constant is not None:
        properties.setdefault('deactivation_time_constant',
                              source.deactivation_time_constant)
    return DeGrooteFregly2016Muscle(
        name=source.name,
        max_isometric_force=source.max_isometric_force,
        optimal_fiber_length=source.optimal_fiber_length,
        tendon_slack_length=source.tendon_slack_length,
        pennation_angle_at_optimal=source.pennation_angle_at_optimal,
        max_contraction_velocity=source.max_contraction_velocity,
        ignore_tendon_compliance=source.ignore_tendon_compliance,
        ignore_activation_dynamics=source.ignore_activation_dynamics,
        **properties)


def replace_muscles(muscles, allow_unsupported=False, **properties):
    # returns a new list in which all supported muscles are DeGrooteFregly2016Muscles.
    # properties (e.g. tendon_compliance_dynamics_mode) are applied to every new muscle.
    replaced = []
    for muscle in muscles:
        if isinstance(muscle, DeGrooteFregly2016Muscle):
            replaced.append(muscle)
            continue
        class_name = get_concrete_class_name(muscle)
        if class_name in SUPPORTED_MUSCLE_TYPES:
            replaced.append(convert_muscle(muscle, **properties))
        else:
            name = read_muscle_name(muscle)
            if not allow_unsupported:
                raise UnsupportedSourceTypeError(name, class_name)
            logger.warning('muscle %s of type %s is not replaced', name, class_name)
            replaced.append(muscle)
    return replaced


def read_muscle_name(muscle):
    if hasattr(muscle, 'getName'):
        return muscle.getName()
    return muscle.name
