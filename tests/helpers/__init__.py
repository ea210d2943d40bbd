"""Test helper utilities for Mentor Match tests."""

from .factories import RecordingNotifier, make_match, make_mentee, make_mentor, seed

__all__ = ["RecordingNotifier", "make_match", "make_mentee", "make_mentor", "seed"]
