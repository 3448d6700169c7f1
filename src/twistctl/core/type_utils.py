from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

Num: TypeAlias = int | float

Vector = NDArray[np.float64]
Matrix = NDArray[np.float64]
Matrix33 = NDArray[np.float64]
Matrix44 = NDArray[np.float64]
Vector3 = NDArray[np.float64]

# Largest Cartesian task dimension (3 linear + 3 angular rows).
TWIST_DIM = 6
