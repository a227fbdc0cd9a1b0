"""Shared utilities for slidekit."""
