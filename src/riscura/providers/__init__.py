"""AI provider clients used to explain control suggestions."""
