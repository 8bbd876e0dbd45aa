"""Bookstore vertical configuration.

Builds the process-wide BookstoreConfig once, from the environment, using
the domain config pattern.
"""

from patterns.domain_config import BookstoreConfig

# Process-wide configuration, resolved at import
config = BookstoreConfig.from_env()
