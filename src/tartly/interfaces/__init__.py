"""Abstract interfaces for tartly collaborators."""
