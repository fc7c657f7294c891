"""
Tests for the word-level Markov chain.
"""
import random
import threading

import pytest

from wordchain.services.exceptions import (
    CorruptChainError,
    InvalidArgumentError,
    UntrainedError,
)
from wordchain.services.markov import (
    MarkovChain,
    MarkovStats,
    NodeView,
    train_from_corpus,
)
from wordchain.services.markov_io import deserialize_from_bytes
from wordchain.services.tokenizer import Tokenizer

from conftest import build_chain_bytes


class TestTraining:
    """Test suite for MarkovChain.train."""

    def test_initialization(self):
        """Test a new chain is empty."""
        chain = MarkovChain()

        assert len(chain) == 0
        assert chain.beginnings == ()
        assert not chain.is_trained
        assert chain.graph() == {}

    def test_hello_world_graph(self, hello_chain):
        """Test the graph built from two short sentences."""
        assert len(hello_chain) == 5
        assert hello_chain.graph() == {
            "Hello": {"world": 1},
            "world": {"!": 1, "is": 1},
            "!": {None: 2},
            "is": {"beautiful": 1},
            "beautiful": {"!": 1},
        }

    def test_hello_world_beginnings(self, hello_chain):
        """Test every training entry registers its first token."""
        assert hello_chain.beginnings == ("Hello", "world")
        assert hello_chain.is_trained

    def test_hello_world_weights(self, hello_chain):
        """Test weight lookups are case-insensitive."""
        assert hello_chain.weight("hello", "world") == 1
        assert hello_chain.weight("WORLD", "!") == 1
        assert hello_chain.weight("world", "Is") == 1
        assert hello_chain.weight("!", None) == 2
        assert hello_chain.weight("hello", "beautiful") == 0
        assert hello_chain.weight("missing", "world") == 0
        assert hello_chain.weight("hello", "missing") == 0

    def test_first_casing_is_kept(self):
        """Test a node keeps the casing of its first occurrence."""
        chain = MarkovChain().train("HELLO there", "hello world")

        assert chain.node("hello").content == "HELLO"
        assert chain.weight("hello", "there") == 1
        assert chain.weight("hello", "world") == 1
        assert len(chain) == 3

    def test_terminal_always_follows_last_token(self):
        """Test the last token connects to the terminal even without punctuation."""
        chain = MarkovChain().train("Tonight is top story")

        assert chain.weight("story", None) == 1
        assert chain.node("story").connections == ((None, 1),)

    def test_knock_knock(self):
        """Test hyphenated words and the terminal connection from '!'."""
        chain = MarkovChain().train("Knock-knock!")

        assert chain.graph() == {"Knock-knock": {"!": 1}, "!": {None: 1}}

    def test_sentence_restart_adds_beginning(self):
        """Test a word after an ending mark becomes a beginning."""
        chain = MarkovChain().train("Hi. How are you?")

        assert chain.beginnings == ("Hi", "How")

    def test_restart_skips_left_punctuation(self):
        """Test a mark after an ending mark is not a beginning."""
        chain = MarkovChain().train("Wait.. , ok")

        assert chain.beginnings == ("Wait",)
        assert chain.weight(".", ",") == 1

    def test_restart_applies_to_every_pair(self):
        """Test the restart rule runs inside every entry, the first included."""
        chain = MarkovChain().train("Why am i doing this? What's the point?", "Hello? Is anyone here?")

        assert chain.beginnings == ("Why", "What's", "Hello", "Is")

    def test_training_twice_doubles_weights(self, sample_dataset):
        """Test training is additive."""
        once = MarkovChain().train(sample_dataset).graph()
        twice = MarkovChain().train(sample_dataset).train(sample_dataset).graph()

        assert twice == {
            content: {target: weight * 2 for target, weight in connections.items()}
            for content, connections in once.items()
        }

    def test_split_training_matches_concatenated(self, sample_dataset):
        """Test separate calls give the same weights as one call."""
        half = len(sample_dataset) // 2
        split = MarkovChain().train(sample_dataset[:half]).train(sample_dataset[half:])
        joined = MarkovChain().train(sample_dataset)

        assert split.graph() == joined.graph()
        assert set(split.beginnings) == set(joined.beginnings)

    def test_varargs_and_collections(self):
        """Test strings and collections of strings can be mixed."""
        chain = MarkovChain().train("a b", ["c d", "e f"], ("g h",))

        assert chain.beginnings == ("a", "c", "e", "g")

    def test_empty_inputs_are_skipped(self):
        """Test entries with no tokens contribute nothing."""
        chain = MarkovChain().train("", "   ", "<b>x</b>", [])

        assert len(chain) == 0
        assert not chain.is_trained

    def test_none_is_a_noop(self):
        """Test None datasets and entries are ignored."""
        chain = MarkovChain()
        chain.train(None)
        chain.train()
        chain.train(["a b", None])

        assert chain.beginnings == ("a",)

    def test_invalid_entry_rejected_without_mutation(self):
        """Test a non-string entry fails before anything is learned."""
        chain = MarkovChain()

        with pytest.raises(InvalidArgumentError):
            chain.train(["valid sentence", 5])
        with pytest.raises(InvalidArgumentError):
            chain.train(42)
        with pytest.raises(InvalidArgumentError):
            chain.train(b"bytes")

        assert len(chain) == 0

    def test_train_returns_chain(self):
        """Test train can be chained."""
        chain = MarkovChain()

        assert chain.train("x y") is chain

    def test_custom_tokenizer(self):
        """Test the chain uses its tokenizer."""
        chain = MarkovChain(Tokenizer(r"\d+")).train("room 101 is empty")

        assert "101" not in chain
        assert chain.weight("room", "is") == 1

    def test_train_from_corpus(self, sample_dataset):
        """Test the convenience constructor."""
        chain = train_from_corpus(sample_dataset)

        assert chain.graph() == MarkovChain().train(sample_dataset).graph()

    def test_concurrent_training(self):
        """Test trainings from several threads never lose increments."""
        chain = MarkovChain()

        def worker():
            for _ in range(50):
                chain.train("Hello world!")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert chain.weight("hello", "world") == 400
        assert chain.weight("!", None) == 400


class TestGeneration:
    """Test suite for MarkovChain.generate."""

    def test_untrained_chain_fails(self):
        """Test generating from an empty chain."""
        with pytest.raises(UntrainedError):
            MarkovChain().generate()

    def test_untrained_checked_before_limit(self):
        """Test an untrained chain reports that first."""
        with pytest.raises(UntrainedError):
            MarkovChain().generate(limit=0)

    @pytest.mark.parametrize("limit", [0, -5, "3", 2.5, True, None])
    def test_invalid_limit_fails(self, hello_chain, limit):
        """Test limits that are not integers >= 1."""
        with pytest.raises(InvalidArgumentError):
            hello_chain.generate(limit=limit)

    def test_invalid_limit_is_value_error(self, hello_chain):
        """Test the limit error can be caught as ValueError."""
        with pytest.raises(ValueError):
            hello_chain.generate(limit=0)

    def test_trained_chain_produces_text(self):
        """Test a trained chain generates reasonable strings."""
        chain = MarkovChain().train(
            "Hello world!", "Today is monday.", "World is beautiful!", "Hello, death, my old friend."
        )

        for _ in range(10):
            assert len(chain.generate()) >= 5

    def test_non_empty_output(self, trained_chain):
        """Test default generation is never empty."""
        for seed in range(20):
            assert len(trained_chain.generate(rng=random.Random(seed))) >= 1

    def test_same_seed_same_output(self, trained_chain):
        """Test generation is reproducible with a seeded random source."""
        rng1 = random.Random(1)
        rng2 = random.Random(1)

        for _ in range(10):
            assert trained_chain.generate(rng=rng1) == trained_chain.generate(rng=rng2)

    def test_single_path_spacing(self):
        """Test a single-path chain renders exactly."""
        chain = MarkovChain().train("hello world!")

        for seed in range(5):
            assert chain.generate(rng=random.Random(seed)) == "hello world!"

    def test_bracket_spacing(self):
        """Test brackets render without inner spaces."""
        chain = MarkovChain().train("call (me) now")

        assert chain.generate(rng=random.Random(0)) == "call (me) now"

    def test_limit_truncates(self):
        """Test the limit caps the number of tokens without a trailing space."""
        chain = MarkovChain().train("hello world!")

        assert chain.generate(limit=1, rng=random.Random(0)) == "hello"
        assert chain.generate(limit=2, rng=random.Random(0)) == "hello world"

    def test_limit_one_yields_a_beginning(self, trained_chain):
        """Test one-token generation picks a beginning."""
        for seed in range(10):
            assert trained_chain.generate(limit=1, rng=random.Random(seed)) in trained_chain.beginnings

    def test_respects_limit_on_cycles(self):
        """Test cyclic graphs stop at the limit."""
        chain = MarkovChain().train("a b a b a b")

        for seed in range(10):
            assert len(chain.generate(limit=5, rng=random.Random(seed)).split()) <= 5

    def test_weighted_selection_law(self):
        """Test connections are chosen in proportion to their weights."""
        chain = MarkovChain().train(["go left"] * 3, "go right")
        rng = random.Random(0)
        runs = 4000

        lefts = sum(chain.generate(limit=2, rng=rng) == "go left" for _ in range(runs))

        assert abs(lefts / runs - 0.75) < 0.05

    def test_generate_does_not_mutate(self, trained_chain):
        """Test generation is read-only."""
        before = trained_chain.graph()
        for seed in range(10):
            trained_chain.generate(rng=random.Random(seed))

        assert trained_chain.graph() == before

    def test_zero_weight_node_is_corrupt(self):
        """Test a reachable node with zero total weight fails cleanly."""
        data = build_chain_bytes([("a", [(0, -1)])], beginnings=[0])
        chain = deserialize_from_bytes(data)

        with pytest.raises(CorruptChainError):
            chain.generate(rng=random.Random(0))

    def test_node_without_connections_stops(self):
        """Test a node with no connections ends the sentence."""
        data = build_chain_bytes([("a", [(1, 1)]), ("b", [])], beginnings=[0])
        chain = deserialize_from_bytes(data)

        assert chain.generate(rng=random.Random(0)) == "a b"


class TestInspection:
    """Test read-only views of the chain."""

    def test_node_view(self, hello_chain):
        """Test node snapshots compare by content and connection set."""
        view = hello_chain.node("WORLD")

        assert view.connections == (("!", 1), ("is", 1))
        assert view == NodeView("world", (("is", 1), ("!", 1)))
        assert view != NodeView("world", (("is", 2), ("!", 1)))
        assert hello_chain.node("missing") is None

    def test_nodes_in_pool_order(self, hello_chain):
        """Test nodes() lists every node once."""
        assert [n.content for n in hello_chain.nodes()] == ["Hello", "world", "!", "is", "beautiful"]

    def test_contains(self, hello_chain):
        """Test membership is case-insensitive."""
        assert "world" in hello_chain
        assert "WORLD" in hello_chain
        assert "nope" not in hello_chain
        assert 5 not in hello_chain

    def test_views_are_copies(self, hello_chain):
        """Test changing returned data leaves the chain intact."""
        graph = hello_chain.graph()
        graph["Hello"]["world"] = 99

        assert hello_chain.weight("hello", "world") == 1
        assert isinstance(hello_chain.beginnings, tuple)

    def test_get_stats(self, hello_chain):
        """Test get_stats returns MarkovStats."""
        stats = hello_chain.get_stats()

        assert isinstance(stats, MarkovStats)
        assert stats.node_count == 5
        assert stats.connection_count == 6
        assert stats.total_weight == 7
        assert stats.terminal_weight == 2
        assert stats.beginning_count == 2
        assert stats.top_transitions[0] == ("!", None, 2)

    def test_get_stats_top_n(self, trained_chain):
        """Test top transitions are capped."""
        assert len(trained_chain.get_stats(top_n=3).top_transitions) == 3

    def test_empty_stats(self):
        """Test stats of an empty chain."""
        stats = MarkovChain().get_stats()

        assert stats == MarkovStats()
