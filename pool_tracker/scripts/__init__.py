"""Command-line helpers for the Pool Trade Tracker."""
