"""
Recut: single-file video edit compiler and render runner.

A bounded set of edits (trim, flip, rotate, crop, aspect normalization,
audio mode, burned-in caption) is held in an EditModel, compiled into an
ffmpeg command, and executed one job at a time against an engine session.
"""

__version__ = "0.1.0"
