"""
Shared pytest fixtures for Markov chain tests.
"""
import struct
from typing import List, Optional, Sequence, Tuple

import pytest

from wordchain.services.markov import MarkovChain


# Chat-like sentences with punctuation, contractions and multi-sentence lines
SAMPLE_DATASET = [
    "Hello world!",
    "Today is monday.",
    "World is beautiful!",
    "Hello, death, my old friend.",
    "Rawr x3 nuzzles pounces on you uwu you so warm",
    "Tonight is top story",
    "It's a me, dio",
    "There's two types of people: those who don't read random strings in the source code and you.",
    "Why am i doing this? What's the point?",
    "Hello? Is anyone here?",
    "Knock-knock!",
    "Who's there?",
    "I am the person you're writing to!",
]


@pytest.fixture
def sample_dataset() -> List[str]:
    """Sample training sentences."""
    return list(SAMPLE_DATASET)


@pytest.fixture
def trained_chain(sample_dataset) -> MarkovChain:
    """A chain trained once on the sample dataset."""
    return MarkovChain().train(sample_dataset)


@pytest.fixture
def hello_chain() -> MarkovChain:
    """A chain trained on two short sentences."""
    return MarkovChain().train("Hello world!", "World is beautiful!")


# Helper functions for tests


def build_chain_bytes(
    nodes: Sequence[Tuple[str, Sequence[Tuple[int, int]]]],
    beginnings: Sequence[int],
    version: int = 1,
    second_counts: Optional[Sequence[int]] = None,
) -> bytes:
    """
    Hand-craft serialized chain bytes.

    Args:
        nodes: (content, [(weight, target index)]) per node
        beginnings: Node indices
        version: Format version field
        second_counts: Override the repeated connection counts
    """
    out = struct.pack(">ii", version, len(nodes))
    for content, connections in nodes:
        encoded = content.encode("utf-8")
        out += struct.pack(">H", len(encoded)) + encoded + struct.pack(">i", len(connections))
    for i, (_, connections) in enumerate(nodes):
        count = len(connections) if second_counts is None else second_counts[i]
        out += struct.pack(">i", count)
        for weight, target in connections:
            out += struct.pack(">qi", weight, target)
    out += struct.pack(">i", len(beginnings))
    for index in beginnings:
        out += struct.pack(">i", index)
    return out
