"""End-to-end verification scenarios."""
