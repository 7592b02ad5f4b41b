"""Post-schedule analysis."""
