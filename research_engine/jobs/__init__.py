"""Research session domain models and progress tracking."""
