import pytest

from degroote2016_muscle_model import DeGrooteFregly2016Muscle

# muscle properties used in the tests
FMo = 1000 # maximal isometric force in N
lMo = 0.1 # optimal fiber length in m
lTs = 0.2 # tendon slack length in m
alpha = 0.1 # optimal pennation angle in rad
vMtildemax = 10 # maximal muscle fiber velocity in lMo/s


def make_muscle(**properties):
    settings = dict(max_isometric_force=FMo, optimal_fiber_length=lMo,
                    tendon_slack_length=lTs, pennation_angle_at_optimal=alpha,
                    max_contraction_velocity=vMtildemax)
    settings.update(properties)
    return DeGrooteFregly2016Muscle('test_muscle', **settings)


def isometric_muscle_tendon_length(muscle, activation=1.0):
    # muscle-tendon length at which the fiber is at optimal length in static equilibrium
    # (assumes zero pennation)
    norm_tendon_force = activation * muscle.calc_active_force_length_multiplier(1.0) + \
                        muscle.calc_passive_force_multiplier(1.0)
    norm_tendon_length = muscle.calc_tendon_force_length_inverse_curve(norm_tendon_force)
    return muscle.get_optimal_fiber_length() + \
           muscle.get_tendon_slack_length() * norm_tendon_length


@pytest.fixture
def muscle():
    return make_muscle()


@pytest.fixture
def implicit_muscle():
    return make_muscle(tendon_compliance_dynamics_mode='implicit')


@pytest.fixture
def rigid_muscle():
    return make_muscle(ignore_tendon_compliance=True)
