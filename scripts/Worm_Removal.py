# Worm Removal
# BlurXTerminator + StarXTerminator in the order that minimizes "worms".
#   1) BlurX correct only      (optional)
#   2) BlurX stars -> StarX mask -> undo x2   (optional, keeps the stars image)
#   3) StarX starless
#   4) BlurX nonstellar        (when Sharpen nonstellar > 0)
#
# Copy into the Scripts folder; it shows up under Utilities.
# Errors are reported by the script runner.

SCRIPT_NAME = "Worm Removal"
SCRIPT_GROUP = "Utilities"

from wormremoval.logging_config import setup_logging
from wormremoval.tool import run_worm_removal


def run(ctx):
    setup_logging()
    run_worm_removal(ctx)
