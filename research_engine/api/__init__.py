"""HTTP surface for research sessions."""
