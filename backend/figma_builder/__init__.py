"""Figma-to-code builder package.

Subpackages:
- integrations: External API clients (Figma REST API, LLM completion service)
- pipeline: URL parsing, node catalogue, selection, thumbnails, generation,
  packaging and the per-user session that ties them together
"""
