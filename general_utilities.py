
import os
import numpy as np
import pandas as pd


def readMotionFile(filename):
    """ Reads OpenSim .mot and .sto files.
    Parameters
    ----------
    filename: absolute path to the .sto file
    Returns
    -------
    dat: pandas DataFrame with one column per label in the file
    """

    if not os.path.exists(filename):
        raise FileNotFoundError(f'{filename} does not exist')

    with open(filename, 'r') as file_id:
        # read header
        next_line = file_id.readline()
        nc = 0
        nr = 0
        while not 'endheader' in next_line:
            if 'datacolumns' in next_line:
                nc = int(next_line[next_line.index(' ') + 1:len(next_line)])
            elif 'datarows' in next_line:
                nr = int(next_line[next_line.index(' ') + 1:len(next_line)])
            elif 'nColumns' in next_line:
                nc = int(next_line[next_line.index('=') + 1:len(next_line)])
            elif 'nRows' in next_line:
                nr = int(next_line[next_line.index('=') + 1:len(next_line)])
            next_line = file_id.readline()

        # process column labels
        next_line = file_id.readline()
        if next_line.isspace():
            next_line = file_id.readline()
        labels = next_line.split()

        # get data
        data = np.full((nr, len(labels)), np.nan)
        for i in range(nr):
            d = [float(x) for x in file_id.readline().split()]
            if len(d) == nc:
                data[i, :] = d

    return pd.DataFrame(data, columns=labels)


def WriteMotionFile(data_matrix, colnames, filename, in_degrees=True):
    # first column of data_matrix is the independent variable (e.g. time)
    datarows, datacols = data_matrix.shape
    time = data_matrix[:, 0]
    range_values = [time[0], time[-1]]

    if len(colnames) != datacols:
        raise ValueError(f'Number of column names ({len(colnames)}) does not match the number of columns in the data ({datacols})')

    name = os.path.basename(filename)
    with open(filename, 'w') as fid:
        # header
        fid.write(f'{name}\nversion=1\nnRows={datarows}\nnColumns={datacols}\n'
                  f'inDegrees={"yes" if in_degrees else "no"}\n')
        fid.write(f'datacolumns {datacols}\ndatarows {datarows}\n'
                  f'range {range_values[0]} {range_values[1]}\nendheader\n')
        # column names
        fid.write('\t'.join(colnames) + '\n')
        # data
        for i in range(datarows):
            row = '\t'.join([f'{value:20.10f}' for value in data_matrix[i, :]]) + '\n'
            fid.write(row)


def WriteDataFrameToSto(df, filename):
    # the index of the dataframe is written as the first column
    data_matrix = np.column_stack([df.index.to_numpy(dtype=float),
                                   df.to_numpy(dtype=float)])
    colnames = [df.index.name or 'time'] + [str(c) for c in df.columns]
    WriteMotionFile(data_matrix, colnames, filename, in_degrees=False)
