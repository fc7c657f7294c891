"""
Errors raised by the Markov chain engine and its codec.
"""
from __future__ import annotations


class MarkovError(Exception):
    """Base class for every chain failure."""


class UntrainedError(MarkovError, RuntimeError):
    """Generation was requested before the chain learned any sentence."""


class InvalidArgumentError(MarkovError, ValueError):
    """A caller passed a malformed limit or dataset."""


class CorruptChainError(MarkovError, RuntimeError):
    """A reachable node has connections but no total weight."""


class FormatError(MarkovError, ValueError):
    """A serialized chain is truncated or otherwise malformed."""


class VersionError(FormatError):
    """A serialized chain was written by a newer format version."""
