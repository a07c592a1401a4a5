"""Command-line interface package for ExamTrack.

The entry point is :func:`examtrack.cli.main.main`.
"""
