"""Live container stores and their scopes."""
