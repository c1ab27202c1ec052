"""Command-line interface for watching, benchmarking and solving Remi hands."""
