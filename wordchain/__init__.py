"""
Word-level Markov chain for chatbot phrase generation.
Train on free-form sentences, sample new ones, and persist the chain.
"""

from .services.exceptions import (
    CorruptChainError,
    FormatError,
    InvalidArgumentError,
    MarkovError,
    UntrainedError,
    VersionError,
)
from .services.markov import MarkovChain, MarkovStats, NodeView, train_from_corpus
from .services.markov_io import (
    MARKOV_IO_VERSION,
    deserialize_from_bytes,
    deserialize_from_file,
    deserialize_from_stream,
    deserialize_from_string,
    serialize_to_bytes,
    serialize_to_file,
    serialize_to_stream,
    serialize_to_string,
)
from .services.tokenizer import Tokenizer

__all__ = [
    "MarkovChain",
    "MarkovStats",
    "NodeView",
    "Tokenizer",
    "train_from_corpus",
    "MARKOV_IO_VERSION",
    "serialize_to_stream",
    "serialize_to_bytes",
    "serialize_to_string",
    "serialize_to_file",
    "deserialize_from_stream",
    "deserialize_from_bytes",
    "deserialize_from_string",
    "deserialize_from_file",
    "MarkovError",
    "UntrainedError",
    "InvalidArgumentError",
    "CorruptChainError",
    "FormatError",
    "VersionError",
]
