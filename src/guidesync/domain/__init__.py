"""Domain layer: normalized entity model, reconciliation and pipeline."""
