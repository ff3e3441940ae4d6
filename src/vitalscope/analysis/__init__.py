"""Signal analysis helpers for derived vital signs.

:mod:`vitals` holds the peak-counting heart/respiratory rate estimates and
the Normal/Warning/Critical banding used by the vitals cards. It stays free
of Qt so it can be exercised directly from tests and scripts.
"""
