"""Crowding-induced panic detection."""

import numpy as np
from scipy.ndimage import convolve

# Moore neighbourhood without the centre cell
NEIGHBOURHOOD_KERNEL = np.array([
    [1, 1, 1],
    [1, 0, 1],
    [1, 1, 1]
], dtype=np.int32)


def neighbour_density(occupancy: np.ndarray, walls: np.ndarray) -> np.ndarray:
    """
    Fraction of walkable Moore neighbours that hold a pedestrian.

    Cells outside the grid count as neither walkable nor occupied. Cells
    with no walkable neighbour get density 0.
    """
    occupied = convolve((occupancy != 0).astype(np.int32), NEIGHBOURHOOD_KERNEL,
                        mode='constant', cval=0)
    walkable = convolve((~walls).astype(np.int32), NEIGHBOURHOOD_KERNEL,
                        mode='constant', cval=0)
    density = np.zeros(occupancy.shape, dtype=np.float64)
    np.divide(occupied, walkable, out=density, where=walkable > 0)
    return density


def panic_mask(occupancy: np.ndarray, walls: np.ndarray, threshold: float) -> np.ndarray:
    """Occupied cells whose pedestrian is crowded beyond threshold."""
    return (occupancy != 0) & (neighbour_density(occupancy, walls) > threshold)


def panic_sensitivity(sensitivity: float, flattening: float) -> float:
    """Field sensitivity of a panicked pedestrian."""
    return sensitivity * (1.0 - flattening)
