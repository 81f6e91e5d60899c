"""Event chain engine: branching multi-stage narrative chains for a farming game."""
