# Export and plot the normalized curves of a DeGroote-Fregly 2016 muscle
#------------------------------------------------------------------------

import os
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

import muscle_curves as curves
from general_utilities import WriteDataFrameToSto

N_SAMPLES = 200


def export_fiber_length_curves_to_table(muscle, norm_fiber_lengths=None):
    # default: 200 points between the minimal and maximal normalized fiber length
    if norm_fiber_lengths is None:
        norm_fiber_lengths = np.linspace(curves.MIN_NORM_FIBER_LENGTH,
                                         curves.MAX_NORM_FIBER_LENGTH, N_SAMPLES)
    norm_fiber_lengths = np.asarray(norm_fiber_lengths, dtype=float)
    table = pd.DataFrame({
        'active_force_length_multiplier':
            muscle.calc_active_force_length_multiplier(norm_fiber_lengths),
        'passive_force_multiplier':
            muscle.calc_passive_force_multiplier(norm_fiber_lengths)},
        index=pd.Index(norm_fiber_lengths, name='normalized_fiber_length'))
    return table


def export_fiber_velocity_multiplier_to_table(muscle, norm_fiber_velocities=None):
    # default: 200 points in [-1.1, 1.1]
    if norm_fiber_velocities is None:
        norm_fiber_velocities = np.linspace(-1.1, 1.1, N_SAMPLES)
    norm_fiber_velocities = np.asarray(norm_fiber_velocities, dtype=float)
    return pd.DataFrame({
        'force_velocity_multiplier':
            muscle.calc_force_velocity_multiplier(norm_fiber_velocities)},
        index=pd.Index(norm_fiber_velocities, name='normalized_fiber_velocity'))


def export_tendon_force_multiplier_to_table(muscle, norm_tendon_lengths=None):
    # default: 200 points in [0.95, 1 + tendon strain at one norm force]
    if norm_tendon_lengths is None:
        norm_tendon_lengths = np.linspace(
            0.95, 1.0 + muscle.get_property('tendon_strain_at_one_norm_force'),
            N_SAMPLES)
    norm_tendon_lengths = np.asarray(norm_tendon_lengths, dtype=float)
    return pd.DataFrame({
        'tendon_force_multiplier':
            muscle.calc_tendon_force_multiplier(norm_tendon_lengths)},
        index=pd.Index(norm_tendon_lengths, name='normalized_tendon_length'))


def print_curves_to_sto_files(muscle, directory='.'):
    # files are named <muscle name>_<curve type>.sto
    if not os.path.exists(directory):
        os.makedirs(directory)
    tables = {'fiber_length_curves': export_fiber_length_curves_to_table(muscle),
              'fiber_velocity_multiplier': export_fiber_velocity_multiplier_to_table(muscle),
              'tendon_force_multiplier': export_tendon_force_multiplier_to_table(muscle)}
    filenames = []
    for curve_type, table in tables.items():
        filename = os.path.join(directory, f'{muscle.name}_{curve_type}.sto')
        WriteDataFrameToSto(table, filename)
        filenames.append(filename)
    return filenames


#---------------------------------
#       Plot functionalities
#---------------------------------

def plot_fl_curve_norm(muscle):
    table = export_fiber_length_curves_to_table(muscle)
    fig = plt.figure()
    plt.plot(table.index, table['active_force_length_multiplier'], label='Active Force')
    plt.plot(table.index, table['passive_force_multiplier'], label='Passive Force')
    plt.axvline(x=1, color='k', linestyle='--')
    plt.axhline(y=1, color='k', linestyle='--')
    plt.legend()
    plt.xlabel('Normalized Fiber Length []')
    plt.ylabel('norm force []')
    return fig


def plot_fv_curve_norm(muscle):
    table = export_fiber_velocity_multiplier_to_table(muscle)
    fig = plt.figure()
    plt.plot(table.index, table['force_velocity_multiplier'])
    plt.axvline(x=0, color='k', linestyle='--')
    plt.axhline(y=1, color='k', linestyle='--')
    plt.xlabel('Normalized Fiber Velocity []')
    plt.ylabel('norm force []')
    return fig


def plot_tendon_curve_norm(muscle):
    table = export_tendon_force_multiplier_to_table(muscle)
    fig = plt.figure()
    plt.plot(table.index, table['tendon_force_multiplier'])
    plt.axvline(x=1, color='k', linestyle='--')
    plt.axhline(y=1, color='k', linestyle='--')
    plt.xlabel('Normalized Tendon Length []')
    plt.ylabel('norm force []')
    return fig
