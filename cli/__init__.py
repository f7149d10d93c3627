"""Usage Stats command-line tools."""
