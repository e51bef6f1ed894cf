"""
Test suite for the group task service.

This package contains:
- unit/: approval gate, completion propagation, synchronization and
  infrastructure tested against the models directly
- integration/: the REST API driven through the Flask test client by
  several authenticated users at once
"""
