"""
reservefi test suite.

Shared protocol fixtures live in `conftest.py`; module-level `_mk_*` helpers
build the smaller pieces each test file needs.
"""
