"""External API clients: Figma REST API and the LLM completion service."""
