"""Test fixtures shared across the authcode_grant test suite."""
