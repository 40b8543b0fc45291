"""Tests for the prompt refiner."""
