"""Test planner: builds ordered, validated execution plans from test trees."""
