"""Greedy machine scheduling: catalog, prioritization, filtering, scoring, timeline."""
