"""Shared test data for mongo_handle tests."""
