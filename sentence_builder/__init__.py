"""
Sentence Builder: Markov and N-gram text generation service.
"""

__version__ = "1.0.0"
