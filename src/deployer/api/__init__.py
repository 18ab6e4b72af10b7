"""HTTP surface for the deployment engine."""
