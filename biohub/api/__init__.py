"""HTTP routes for the submission pipeline."""
