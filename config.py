# config.py
import os

# ======= SAT oracle =======
# Explicit path to a DIMACS solver binary (cryptominisat5 or compatible).
ORACLE_PATH          = os.getenv("SP_ORACLE_PATH", "")
# Extra CLI arguments appended to the oracle command line.
ORACLE_ARGS          = os.getenv("SP_ORACLE_ARGS", "")
# Thread count handed to cryptominisat; 0 means "cpu count - 1".
ORACLE_THREADS       = int(os.getenv("SP_ORACLE_THREADS", "0"))
# Per-call timebox for one oracle run (seconds, 0 = unlimited).
ORACLE_TIMEOUT_S     = float(os.getenv("SP_ORACLE_TIMEOUT_S", "300"))
# Use the bundled OR-Tools CP-SAT oracle when no binary can be located.
ORACLE_FALLBACK_CPSAT = int(os.getenv("SP_ORACLE_FALLBACK_CPSAT", "1")) != 0

# ======= Search =======
# Overall deadline for the descending-target loop (seconds, 0 = unlimited).
SOLVE_TIMEOUT_S      = float(os.getenv("SP_SOLVE_TIMEOUT_S", "0"))
# Default policy for orbits that overlap themselves when the request omits it.
SOFT_SYMMETRY        = int(os.getenv("SP_SOFT_SYMMETRY", "1")) != 0
# Largest accepted grid side (cells) for incoming requests.
MAX_GRID_SIDE        = int(os.getenv("SP_MAX_GRID_SIDE", "64"))

# ======= Output names =======
PLACEMENTS_OUT = os.getenv("SP_PLACEMENTS_OUT", "placements.txt")
LAYOUT_HTML    = os.getenv("SP_LAYOUT_HTML", "layout_view.html")
LOG_DIR        = os.getenv("SP_LOG_DIR", "logs")

class CFG:
    ORACLE_PATH           = ORACLE_PATH
    ORACLE_ARGS           = ORACLE_ARGS
    ORACLE_THREADS        = ORACLE_THREADS
    ORACLE_TIMEOUT_S      = ORACLE_TIMEOUT_S
    ORACLE_FALLBACK_CPSAT = ORACLE_FALLBACK_CPSAT

    SOLVE_TIMEOUT_S = SOLVE_TIMEOUT_S
    SOFT_SYMMETRY   = SOFT_SYMMETRY
    MAX_GRID_SIDE   = MAX_GRID_SIDE

    PLACEMENTS_OUT = PLACEMENTS_OUT
    LAYOUT_HTML    = LAYOUT_HTML
    LOG_DIR        = LOG_DIR

__all__ = ["CFG"]
