# =============================================================================
# TELETRADE - APPLICATION LAYER
# =============================================================================
#
# Wiring of collector, paper_trader, onchain and notifications into the
# poll loop, plus the JSON stores and the operator CLI.
#
# =============================================================================
