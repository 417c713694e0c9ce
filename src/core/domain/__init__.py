"""Domain models of the CLI.

The domain knows nothing about HTTP or the terminal: only options, output
formats and agent documents.
"""
