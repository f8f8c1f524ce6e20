"""Tests for the form compliance engine."""
