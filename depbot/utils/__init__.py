"""Shared utilities: async subprocesses, HTTP pooling, retries and logging."""
