"""Shared plumbing: configuration, error types and the OAuth callback server."""
