"""Test orchestration: data model, timeline merging, execution and results."""
