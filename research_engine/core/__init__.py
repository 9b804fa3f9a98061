"""Cross-cutting service infrastructure."""
