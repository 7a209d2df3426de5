"""Core building blocks: identity, exchange, pod specs, cluster and watch."""
