"""HTTP API for the Glocal Adaptation Engine."""
