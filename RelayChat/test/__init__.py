"""
Test suite for RelayChat.

Run with: python -m pytest RelayChat/test -v
"""
