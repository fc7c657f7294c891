"""
Word-level Markov chain text generator (order 1, CPU-only).

The chain is a graph of word/punctuation nodes. Each node keeps weighted
connections to the nodes that followed it in the training sentences, or to
the terminal target when it ended a sentence. Generation starts at one of
the known sentence beginnings and walks the graph, choosing connections in
proportion to their weights.

Training: from any number of strings (additive, never resets).
Persistence: binary/base64, see markov_io.
"""
from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from .exceptions import CorruptChainError, InvalidArgumentError, UntrainedError
from .tokenizer import Tokenizer, attaches_left, is_sentence_end

logger = logging.getLogger(__name__)

# Handle of the "end of sentence" target. Never stored in the node arena.
TERMINAL = -1

DEFAULT_LIMIT = 100


@dataclass
class Connection:
    """Directed edge to a node handle (or TERMINAL) with a transition count."""
    target: int
    weight: int = 0


@dataclass
class Node:
    """A pooled token. `content` keeps the casing of its first occurrence."""
    content: str
    connections: List[Connection] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.content.lower()


@dataclass(frozen=True)
class NodeView:
    """
    Immutable snapshot of a node.

    `connections` lists (target content, weight) pairs in insertion order;
    a target of None is the terminal. Two views are equal when their
    content and connection sets match.
    """
    content: str
    connections: Tuple[Tuple[Optional[str], int], ...] = ()

    def connection_set(self) -> FrozenSet[Tuple[Optional[str], int]]:
        return frozenset(self.connections)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeView):
            return NotImplemented
        return self.content == other.content and self.connection_set() == other.connection_set()

    def __hash__(self) -> int:
        return hash((self.content, self.connection_set()))


@dataclass
class MarkovStats:
    """Statistics about a trained chain."""
    node_count: int = 0
    connection_count: int = 0
    total_weight: int = 0
    beginning_count: int = 0
    terminal_weight: int = 0
    top_transitions: List[Tuple[str, Optional[str], int]] = field(default_factory=list)


class MarkovChain:
    """
    Order-1 Markov chain over words and punctuation marks.

    Usage:
        chain = MarkovChain()
        chain.train("Hello world!", "World is beautiful!")
        chain.generate(limit=20, rng=random.Random(1))

    Nodes live in an arena owned by the chain and refer to each other by
    index. `train`, `generate` and every inspection method hold the chain
    lock, so calls from several threads run one at a time. Nothing mutable
    is handed out; use the read-only views to inspect the graph.
    """

    def __init__(self, tokenizer: Optional[Tokenizer] = None):
        """
        Args:
            tokenizer: Sentence tokenizer; a default Tokenizer if omitted.
        """
        self.tokenizer = tokenizer or Tokenizer()
        self._nodes: List[Node] = []
        # lowercase content -> arena index
        self._pool: Dict[str, int] = {}
        # insertion ordered so seeded generation is reproducible
        self._beginnings: List[int] = []
        self._beginning_set: Set[int] = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def train(self, *dataset: Any) -> "MarkovChain":
        """
        Train the chain on sentences. Previous training is kept.

        Args:
            *dataset: Strings and/or iterables of strings. Each string is
                one training entry; None values are ignored.

        Raises:
            InvalidArgumentError: An entry is not a string. Nothing is
                learned from the call in that case.
        """
        sentences = self._tokenize_dataset(dataset)

        with self._lock:
            for tokens in sentences:
                self._add_sentence(tokens)
            node_count = len(self._nodes)

        logger.debug(f"[Markov] Trained on {len(sentences)} sentences, {node_count} nodes total")
        return self

    def _tokenize_dataset(self, dataset: Sequence[Any]) -> List[List[str]]:
        entries: List[str] = []
        for item in dataset:
            if item is None:
                continue
            if isinstance(item, str):
                entries.append(item)
            elif isinstance(item, Iterable) and not isinstance(item, (bytes, bytearray)):
                for entry in item:
                    if entry is None:
                        continue
                    if not isinstance(entry, str):
                        raise InvalidArgumentError(f"Dataset entries must be strings, got {type(entry).__name__}")
                    entries.append(entry)
            else:
                raise InvalidArgumentError(f"Dataset must be strings or collections of strings, got {type(item).__name__}")

        sentences = []
        for entry in entries:
            tokens = self.tokenizer.tokenize(entry)
            if tokens:
                sentences.append(tokens)

        skipped = len(entries) - len(sentences)
        if skipped:
            logger.debug(f"[Markov] Skipped {skipped} entries with no meaningful tokens")
        return sentences

    def _add_sentence(self, tokens: List[str]):
        last = self._node_for(tokens[0])
        self._add_beginning(last)

        for token in tokens[1:]:
            connection = self._connection_for(last, self._node_for(token))
            connection.weight += 1
            current = connection.target

            # a word after an ending mark starts a new sentence
            if is_sentence_end(self._nodes[last].content) and not attaches_left(self._nodes[current].content):
                self._add_beginning(current)

            last = current

        self._connection_for(last, TERMINAL).weight += 1

    def _node_for(self, content: str) -> int:
        """Return the handle of the pooled node for content, creating it if needed."""
        key = content.lower()
        index = self._pool.get(key)
        if index is None:
            index = len(self._nodes)
            self._nodes.append(Node(content))
            self._pool[key] = index
        return index

    def _connection_for(self, source: int, target: int) -> Connection:
        """Return the source->target connection, creating it with no weight if needed."""
        connections = self._nodes[source].connections
        for connection in connections:
            if connection.target == target:
                return connection
        connection = Connection(target)
        connections.append(connection)
        return connection

    def _add_beginning(self, index: int):
        if index not in self._beginning_set:
            self._beginning_set.add(index)
            self._beginnings.append(index)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generate(self, limit: int = DEFAULT_LIMIT, rng: Optional[random.Random] = None) -> str:
        """
        Generate a sentence by walking the chain.

        Args:
            limit: Maximum number of tokens in the result (>= 1)
            rng: Random source; the same seed gives the same output.
                Defaults to a time-seeded generator.

        Raises:
            UntrainedError: The chain has not been trained yet.
            InvalidArgumentError: limit is not an integer >= 1.
            CorruptChainError: A reachable node has zero total weight.
        """
        with self._lock:
            if not self._beginnings:
                raise UntrainedError("The chain has not been trained yet.")
            if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
                raise InvalidArgumentError(f"Limit must be >= 1: {limit!r}")

            rng = rng or random.Random(time.time_ns())

            tokens: List[str] = []
            current = self._beginnings[rng.randrange(len(self._beginnings))]
            while current != TERMINAL and len(tokens) < limit:
                node = self._nodes[current]
                tokens.append(node.content)
                current = self._next(node, rng)

        return self.tokenizer.join(tokens)

    def _next(self, node: Node, rng: random.Random) -> int:
        """
        Pick the next handle by weighted sequential elimination.

        Each connection gets a fresh draw in [1, remaining]; it wins if the
        draw is within its weight, otherwise its weight leaves the pool.
        P(connection) = weight / total weight.
        """
        if not node.connections:
            return TERMINAL

        remaining = sum(c.weight for c in node.connections)
        if remaining <= 0:
            raise CorruptChainError(f"Node {node.content!r} has connections with zero total weight")

        for connection in node.connections:
            if rng.randint(1, remaining) <= connection.weight:
                return connection.target
            remaining -= connection.weight
            if remaining <= 0:
                break

        raise CorruptChainError(f"Node {node.content!r} has inconsistent connection weights")

    # ------------------------------------------------------------------
    # Inspection (read-only)
    # ------------------------------------------------------------------
    @property
    def is_trained(self) -> bool:
        with self._lock:
            return bool(self._beginnings)

    @property
    def beginnings(self) -> Tuple[str, ...]:
        """Contents of the nodes a generated sentence can start with."""
        with self._lock:
            return tuple(self._nodes[i].content for i in self._beginnings)

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def __contains__(self, content: object) -> bool:
        if not isinstance(content, str):
            return False
        with self._lock:
            return content.lower() in self._pool

    def node(self, content: str) -> Optional[NodeView]:
        """Snapshot of the node for content (case-insensitive), or None."""
        with self._lock:
            index = self._pool.get(content.lower())
            return None if index is None else self._view(index)

    def nodes(self) -> List[NodeView]:
        """Snapshots of every node, in pool order."""
        with self._lock:
            return [self._view(i) for i in range(len(self._nodes))]

    def weight(self, source: str, target: Optional[str]) -> int:
        """
        Weight of the source->target connection, 0 if there is none.
        A target of None means the terminal.
        """
        with self._lock:
            index = self._pool.get(source.lower())
            if index is None:
                return 0
            if target is None:
                wanted = TERMINAL
            else:
                wanted = self._pool.get(target.lower())
                if wanted is None:
                    return 0
            for connection in self._nodes[index].connections:
                if connection.target == wanted:
                    return connection.weight
            return 0

    def graph(self) -> Dict[str, Dict[Optional[str], int]]:
        """The whole graph as {content: {target content or None: weight}}."""
        with self._lock:
            return {
                node.content: {self._target_content(c.target): c.weight for c in node.connections}
                for node in self._nodes
            }

    def get_stats(self, top_n: int = 10) -> MarkovStats:
        """Get statistics about the chain."""
        with self._lock:
            stats = MarkovStats(node_count=len(self._nodes), beginning_count=len(self._beginnings))
            transitions = []
            for node in self._nodes:
                for connection in node.connections:
                    stats.connection_count += 1
                    stats.total_weight += connection.weight
                    if connection.target == TERMINAL:
                        stats.terminal_weight += connection.weight
                    transitions.append((node.content, self._target_content(connection.target), connection.weight))

        transitions.sort(key=lambda t: t[2], reverse=True)
        stats.top_transitions = transitions[:top_n]
        return stats

    def _target_content(self, target: int) -> Optional[str]:
        return None if target == TERMINAL else self._nodes[target].content

    def _view(self, index: int) -> NodeView:
        node = self._nodes[index]
        return NodeView(
            content=node.content,
            connections=tuple((self._target_content(c.target), c.weight) for c in node.connections),
        )

    def __repr__(self) -> str:
        return f"MarkovChain(nodes={len(self._nodes)}, beginnings={len(self._beginnings)})"

    # ------------------------------------------------------------------
    # Codec support
    # ------------------------------------------------------------------
    def _export(self) -> Tuple[List[Tuple[str, List[Tuple[int, int]]]], List[int]]:
        """Copy the arena as ([(content, [(weight, target)])], beginnings) under the lock."""
        with self._lock:
            nodes = [
                (node.content, [(c.weight, c.target) for c in node.connections])
                for node in self._nodes
            ]
            return nodes, list(self._beginnings)

    @classmethod
    def _restore(
        cls,
        nodes: List[Node],
        beginnings: Iterable[int],
        tokenizer: Optional[Tokenizer] = None,
    ) -> "MarkovChain":
        """
        Build a new chain around an already validated arena.

        Node contents must be unique case-insensitively and every handle
        must point into `nodes` (or be TERMINAL for connection targets).
        """
        chain = cls(tokenizer)
        chain._nodes = nodes
        chain._pool = {node.key: index for index, node in enumerate(nodes)}
        for index in beginnings:
            chain._add_beginning(index)
        return chain


def train_from_corpus(lines: Iterable[str], tokenizer: Optional[Tokenizer] = None) -> MarkovChain:
    chain = MarkovChain(tokenizer)
    chain.train(lines)
    return chain
