from __future__ import annotations

import os

import numpy as np

# 0 / 0 is how undefined subcommunities propagate, so don't warn on it
np.seterr(invalid="ignore", divide="ignore")


def check_quiet() -> bool:
    """Check whether to enable quiet mode."""
    if "DIVPART_QUIET_MODE" in os.environ:
        if os.environ["DIVPART_QUIET_MODE"].lower() in ["true", "1"]:
            return True
    return False


QUIET_MODE = check_quiet()


def check_debug() -> bool:
    """Check whether to enable debug mode."""
    if "DIVPART_DEBUG_MODE" in os.environ:
        if os.environ["DIVPART_DEBUG_MODE"].lower() in ["true", "1"]:
            return True
    return False


DEBUG_MODE: bool = check_debug()


# for all_close equality checks
ATOL: float = 0.001
RTOL: float = 0.0001
# for deciding whether non floating point proportions sum to one, floats use their own eps
PROPORTION_RTOL: float = float(np.sqrt(np.finfo(np.float64).eps))
# fastmath flags - NaN and inf are meaningful values, so no "nnan" or "ninf"
FASTMATH: set[str] = {"nsz", "arcp", "contract", "reassoc"}
