#!/usr/bin/env python3
"""
Train a word-level Markov chain from text files and save it.

Each non-empty line of an input file is one training sentence. Training is
additive: pass --chain to extend a previously saved chain.

Usage:
    python scripts/train_chain.py data/lines.txt more.txt \\
        --output data/chains/default.chain \\
        --samples 5 --seed 42
"""

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import List

from wordchain.config import settings
from wordchain.services.exceptions import MarkovError
from wordchain.services.markov import MarkovChain
from wordchain.services.markov_io import deserialize_from_file, serialize_to_file
from wordchain.services.tokenizer import Tokenizer
from wordchain.utils.logger import setup_logger

setup_logger("wordchain")
logger = logging.getLogger("wordchain.scripts.train_chain")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train a Markov chain on text files")
    parser.add_argument("inputs", nargs="+", type=str, help="Text files, one sentence per line")
    parser.add_argument("--chain", type=str, default=None, help="Existing chain file to extend")
    parser.add_argument("--output", type=str, required=True, help="Where to write the trained chain")
    parser.add_argument("--samples", type=int, default=3, help="Number of sentences to print after training")
    parser.add_argument("--limit", type=int, default=settings.MARKOV_DEFAULT_LIMIT,
                        help="Maximum tokens per sample")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for samples")
    return parser.parse_args(argv)


def read_lines(paths: List[str]) -> List[str]:
    lines = []
    for raw in paths:
        path = Path(raw)
        with path.open("r", encoding="utf-8") as f:
            count = 0
            for line in f:
                line = line.strip()
                if line:
                    lines.append(line)
                    count += 1
        logger.info(f"[Train] Read {count} lines from {path}")
    return lines


def main(argv=None) -> int:
    args = parse_args(argv)
    tokenizer = Tokenizer(settings.MARKOV_MEANINGLESS_PATTERN)

    if args.chain:
        chain = deserialize_from_file(args.chain, tokenizer)
    else:
        chain = MarkovChain(tokenizer)

    chain.train(read_lines(args.inputs))
    stats = chain.get_stats()
    logger.info(f"[Train] Chain has {stats.node_count} nodes, {stats.connection_count} connections")

    serialize_to_file(chain, args.output)

    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        for _ in range(args.samples):
            print(chain.generate(limit=args.limit, rng=rng))
    except MarkovError as e:
        logger.error(f"[Train] Could not sample: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
