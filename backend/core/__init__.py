"""Core pricing and settlement logic for the EPL bet simulator.

This package contains pure building blocks:

- ``pricing_config``: strength weights and draw share
- ``strength``: team season stats → strength score
- ``odds_math``: two strengths → home/draw/away decimal odds
- ``head_to_head``: historical fixtures → orientation-relative counts
- ``settlement``: final score + selection → WON/LOST/VOID and payout

Nothing in this package imports from ``backend.services`` or ``backend.models``.
All modules are side-effect-free and unit-testable in isolation.
"""
