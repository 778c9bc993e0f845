"""
Flag storage backends.

The evaluation service only depends on the abstract ``FlagRepository``;
``InMemoryFlagRepository`` serves definitions loaded from a YAML or JSON
file and is also what the tests use.
"""

from .repository import FlagRepository, InMemoryFlagRepository, flag_from_dict

__all__ = ["FlagRepository", "InMemoryFlagRepository", "flag_from_dict"]
