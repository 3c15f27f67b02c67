# =============================================================================
# TELETRADE - TEST SUITE
# =============================================================================
#
# Structure:
#   tests/
#     unit/           - Ledger, gate, envelope, submitter, REST client,
#                       config, stores, CLI
#     integration/    - Full poll cycles against fakes
#
# Run: pytest
#
# =============================================================================
