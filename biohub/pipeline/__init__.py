"""Submission pipeline: state machine and step orchestration."""
