"""Domain models, ports and pipeline logic."""
