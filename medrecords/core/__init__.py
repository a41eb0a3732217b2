"""Domain logic and data collaborators (validation, stores, demo data)."""
