"""Browser-facing HTTP API for the shell."""
