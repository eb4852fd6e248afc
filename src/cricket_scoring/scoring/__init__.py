"""Scoring engine: entities, ball recorder, state machine, metrics and aggregation."""
