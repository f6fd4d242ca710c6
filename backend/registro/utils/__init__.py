"""Small helpers shared by the API layer."""
