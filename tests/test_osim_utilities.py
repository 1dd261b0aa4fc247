# test replacing muscles by DeGroote-Fregly 2016 muscles
#--------------------------------------------------------
import logging

import pytest

from conftest import make_muscle
from degroote2016_muscle_model import DeGrooteFregly2016Muscle
from muscle_errors import UnsupportedSourceTypeError
from osim_utilities import SourceMuscle, replace_muscles, convert_muscle


class OsimMuscle:
    # muscle with the getters of the OpenSim python API
    def __init__(self, name, class_name, activation_time_constant=0.01,
                 deactivation_time_constant=0.04):
        self.name = name
        self.class_name = class_name
        self.activation_time_constant = activation_time_constant
        self.deactivation_time_constant = deactivation_time_constant

    def getName(self):
        return self.name

    def getConcreteClassName(self):
        return self.class_name

    def getMaxIsometricForce(self):
        return 1500.0

    def getOptimalFiberLength(self):
        return 0.08

    def getTendonSlackLength(self):
        return 0.25

    def getPennationAngleAtOptimalFiberLength(self):
        return 0.2

    def getMaxContractionVelocity(self):
        return 12.0

    def get_ignore_tendon_compliance(self):
        return False

    def get_ignore_activation_dynamics(self):
        return False

    def get_activation_time_constant(self):
        return self.activation_time_constant

    def get_deactivation_time_constant(self):
        return self.deactivation_time_constant


def source_muscle(name, class_name):
    return SourceMuscle(name=name, concrete_class_name=class_name,
                        max_isometric_force=800.0, optimal_fiber_length=0.12,
                        tendon_slack_length=0.3, pennation_angle_at_optimal=0.1,
                        max_contraction_velocity=10.0, ignore_tendon_compliance=True)


def test_convert_opensim_muscle():
    muscle = convert_muscle(OsimMuscle('soleus_r', 'Thelen2003Muscle'))
    assert isinstance(muscle, DeGrooteFregly2016Muscle)
    assert muscle.name == 'soleus_r'
    assert muscle.get_maximal_isometric_force() == 1500.0
    assert muscle.get_optimal_fiber_length() == 0.08
    assert muscle.get_tendon_slack_length() == 0.25
    assert muscle.get_property('pennation_angle_at_optimal') == 0.2
    assert muscle.get_property('max_contraction_velocity') == 12.0
    # time constants of the Thelen muscle are kept
    assert muscle.get_property('activation_time_constant') == 0.01
    assert muscle.get_property('deactivation_time_constant') == 0.04


def test_replace_muscles():
    existing = make_muscle()
    muscles = [OsimMuscle('soleus_r', 'Millard2012EquilibriumMuscle'),
               source_muscle('gasmed_r', 'Thelen2003Muscle'),
               existing]
    replaced = replace_muscles(muscles, tendon_compliance_dynamics_mode='implicit')
    assert len(replaced) == 3
    assert all(isinstance(m, DeGrooteFregly2016Muscle) for m in replaced)
    assert [m.name for m in replaced] == ['soleus_r', 'gasmed_r', 'test_muscle']
    assert replaced[2] is existing

    # default time constants for muscles that do not have them
    assert replaced[0].get_property('activation_time_constant') == 0.015
    assert replaced[0].get_implicit_enabled_normalized_tendon_force()
    assert replaced[1].get_property('ignore_tendon_compliance')
    assert replaced[1].get_optimal_fiber_length() == 0.12
    # the input list is not changed
    assert isinstance(muscles[0], OsimMuscle)


def test_unsupported_muscle_type():
    muscles = [OsimMuscle('soleus_r', 'Millard2012EquilibriumMuscle'),
               OsimMuscle('psoas_r', 'RigidTendonMuscle')]
    with pytest.raises(UnsupportedSourceTypeError) as excinfo:
        replace_muscles(muscles)
    assert excinfo.value.muscle_name == 'psoas_r'
    assert excinfo.value.concrete_class_name == 'RigidTendonMuscle'


def test_keep_unsupported_muscle_type(caplog):
    muscles = [OsimMuscle('soleus_r', 'Millard2012EquilibriumMuscle'),
               OsimMuscle('psoas_r', 'RigidTendonMuscle')]
    with caplog.at_level(logging.WARNING, logger='osim_utilities'):
        replaced = replace_muscles(muscles, allow_unsupported=True)
    assert isinstance(replaced[0], DeGrooteFregly2016Muscle)
    assert replaced[1] is muscles[1]
    assert 'psoas_r' in caplog.text
