"""Domain types: action specs, envelopes, the action registry."""
