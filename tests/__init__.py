"""Test suite for Mnemo."""
