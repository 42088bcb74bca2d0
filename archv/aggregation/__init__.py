"""Multi-source aggregation: isolated fan-out, merge, dedup and fallback."""
