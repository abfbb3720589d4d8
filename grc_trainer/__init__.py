"""
GRC Trainer

Daily GRC training content pipeline: prompt building, web-grounded
generation, formatting and factual verification, curriculum graph and
topic recommendation.
"""

__version__ = "1.0.0"
