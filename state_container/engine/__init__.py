"""Transition engines: copy-on-write drafts, deep clones, the reducer."""
