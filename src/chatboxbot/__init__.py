"""Chatbox bot framework: polls a forum chatbox and feeds its messages to modules."""

__version__ = "0.1.0"
