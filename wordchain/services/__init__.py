"""
Markov chain engine: tokenizer, chain graph and codec.
"""
