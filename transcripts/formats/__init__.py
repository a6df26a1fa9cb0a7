"""Output formats for rendered transcripts."""
