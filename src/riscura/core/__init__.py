"""Configuration, persistence, suggestion workflow and reporting."""
