"""ORM tables."""
