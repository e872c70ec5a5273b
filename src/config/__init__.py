"""Runtime settings and scoring policy constants."""
