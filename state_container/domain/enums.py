"""Controlled enumerations for the state-container domain."""

from __future__ import annotations

from enum import Enum


class DraftStrategy(str, Enum):
    """How a transition obtains the working copy handed to a handler.

    DRAFT: copy-on-write draft; unchanged subtrees are shared with the
           previous state.
    CLONE: deep clone of the whole state, shallow-merged afterwards.
    """

    DRAFT = "draft"
    CLONE = "clone"
