"""Builder configuration constants: single source of truth for all env vars."""

import os

# Server binding: used by entrypoint / uvicorn
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# CORS: comma-separated list of allowed origins
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")

# Figma REST API: Personal Access Token for design file access
FIGMA_TOKEN = os.getenv("FIGMA_TOKEN", "")
FIGMA_API_BASE = os.getenv("FIGMA_API_BASE", "https://api.figma.com")

# Completion service (OpenAI-compatible chat completions via the HF router)
HF_TOKEN = os.getenv("HF_TOKEN", "")
COMPLETION_API_URL = os.getenv(
    "COMPLETION_API_URL", "https://router.huggingface.co/v1/chat/completions"
)
MODELS_API_URL = os.getenv("MODELS_API_URL", "https://huggingface.co/api/models")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "openai/gpt-4o")

# Where save-component writes generated files
GENERATED_DIR = os.getenv("GENERATED_DIR", "generated")
