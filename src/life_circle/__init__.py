"""Core aggregation and scoring engine for 15-minute life circle evaluation."""
