# =============================================================================
# TELETRADE - ENTRY POINT
# =============================================================================
#
# Enables `python -m app`. Delegates to app/run.py.
#
# =============================================================================

import sys

from app.run import main

if __name__ == "__main__":
    sys.exit(main())
