"""Data output helpers.

:mod:`export` turns the in-memory buffers into the JSON snapshot written by
the Export button. No other persistence exists; buffers live only for the
session.
"""
