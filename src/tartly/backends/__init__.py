"""Concrete implementations of the tartly interfaces."""
