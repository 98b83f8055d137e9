"""Tests for the chart-loader command line tool."""
