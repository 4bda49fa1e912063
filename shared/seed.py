import os
import random

import numpy as np


def set_global_seed(seed: int) -> np.random.RandomState:
    """Seed the global generators and return a dedicated RandomState."""
    os.environ["PYTHONHASHSEED"] = str(seed)
    random.seed(seed)
    np.random.seed(seed)
    return np.random.RandomState(seed)


def derive_seed(seed: int | None, offset: int) -> int | None:
    if seed is None:
        return None
    return (int(seed) + int(offset)) % (2**32 - 1)


__all__ = ["set_global_seed", "derive_seed"]
