"""HTTP API for live dictation sessions."""
