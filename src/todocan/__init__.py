"""todocan: personal task list with optimistic reconciliation and prompt-to-tasks generation."""

__version__ = "0.1.0"
